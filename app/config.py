import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATABASE = os.path.join(BASE_DIR, "DentalCare.db")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "google/gemma-3-27b-it:free")
APP_URL = os.getenv("APP_URL", "http://localhost:3000")

CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

# Bump whenever intent/router/FAQ-selection prompts change; older cached decisions are ignored.
PIPELINE_VERSION = int(os.getenv("PIPELINE_VERSION", "1"))

MAX_INPUT_LENGTH = int(os.getenv("MAX_INPUT_LENGTH", "1000"))
FAQ_TOP_N = int(os.getenv("FAQ_TOP_N", "5"))
FAQ_FALLBACK_THRESHOLD = float(os.getenv("FAQ_FALLBACK_THRESHOLD", "0.5"))
SUGGESTION_MAX_WORDS = 3

# Braces parts diagrams attached to EDUCATION answers
EDUCATION_MEDIA_IDS = [
    int(x) for x in os.getenv("EDUCATION_MEDIA_IDS", "5,6").split(",") if x.strip()
]

CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost").split(",") if o.strip()
]

SAFE_FALLBACKS = {
    "english": "I'm here to help with braces-related questions. Please try rephrasing your question or ask something specific about orthodontic care.",
    "urdu": "میں بریسز سے متعلق سوالات میں مدد کے لیے یہاں موجود ہوں۔ براہ کرم اپنے سوال کو دوبارہ لکھیں۔",
    "roman-urdu": "Main braces se mutaliq sawalat mein madad ke liye yahan mojood hoon. Barah-e-karam apne sawal ko dobara likhain.",
}

EARLY_RESPONSES = {
    "GREETING": {
        "english": "Hello! How can I help you with your dental care today?",
        "urdu": "سلام! میں آپ کی دانتوں کی دیکھ بھال میں کیسے مدد کر سکتا ہوں؟",
        "roman-urdu": "AOA! Main aap ki danton ki dekh bhaal mein kaise madad kar sakta hoon?",
    },
    "META": {
        "english": "I am the DentalCare AI Assistant here to help with your orthodontic questions.",
        "urdu": "میں ڈینٹل کیئر اے آئی اسسٹنٹ ہوں جو آپ کے سوالات میں مدد کے لیے یہاں موجود ہوں۔",
        "roman-urdu": "Main DentalCare AI Assistant hoon jo aap ke sawalat mein madad ke liye yahan mojood hoon.",
    },
    "IRRELEVANT": {
        "english": "I focus only on dental and orthodontic care. Please ask something related to teeth or braces.",
        "urdu": "میں صرف دانتوں اور آرتھوڈونٹکس سے متعلق سوالات کا جواب دے سکتا ہوں۔",
        "roman-urdu": "Main sirf danton aur braces se mutaliq sawalat ka jawab de sakta hoon.",
    },
}

SUGGESTION_REPLIES = {
    "english": "Here are some suggestions:",
    "urdu": "یہاں کچھ تجاویز ہیں:",
    "roman-urdu": "Yeh kuch tajaweez hain:",
}
