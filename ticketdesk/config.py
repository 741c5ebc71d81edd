from dotenv import load_dotenv
import os

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/ticketdesk")
APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "1") not in ("0", "false", "False")

# Email domains accepted by the user directory
ALLOWED_DOMAINS = [
    d.strip().lower()
    for d in os.getenv(
        "ALLOWED_DOMAINS", "pitang.com,novobbmnet.com.br,bbmnet.com.br,example.com"
    ).split(",")
    if d.strip()
]

# People offered as ticket assignees; also the name source for assignee upserts
PERMITTED_ASSIGNEES = [
    {"email": "alice@pitang.com", "name": "Alice Wonderland (Pitang)"},
    {"email": "bob@novobbmnet.com.br", "name": "Bob Construtor (NovoBBMNet)"},
    {"email": "charlie@pitang.com", "name": "Charlie Brown (Pitang)"},
    {"email": "david@example.com", "name": "David Copperfield (Exemplo)"},
    {"email": "eva@example.com", "name": "Eva Green (Exemplo)"},
]

# Status descriptions that drive the handling timestamps
STATUS_TODO = os.getenv("STATUS_TODO", "Para fazer")
STATUS_IN_PROGRESS = os.getenv("STATUS_IN_PROGRESS", "Em Andamento")
STATUS_DONE = os.getenv("STATUS_DONE", "Finalizado")
DEFAULT_STATUS = STATUS_TODO

PASSWORD_HASH_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "120000"))

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")


def is_production() -> bool:
    return APP_ENV == "production"
