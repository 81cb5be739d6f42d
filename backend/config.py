"""Configuration management for the Journal RAG service."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Vector Index Configuration
VECTOR_TABLE = os.getenv("VECTOR_TABLE", "chunks")
MATCH_FUNCTION = os.getenv("MATCH_FUNCTION", "match_chunks")
MERGE_FUNCTION = os.getenv("MERGE_FUNCTION", "merge_chunk_metadata")
EMBEDDING_DIMENSION = 1024  # pgvector column is vector(1024)

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "intfloat/multilingual-e5-large")
EMBEDDING_API_URL = os.getenv(
    "EMBEDDING_API_URL",
    f"https://router.huggingface.co/hf-inference/models/{EMBEDDING_MODEL}/pipeline/feature-extraction"
)
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.3-70b-versatile")

# Retrieval Configuration
DEFAULT_TOP_K = 10
MAX_TOP_K = 100
LISTING_LIMIT = 1000  # Upper bound on records scanned by metadata listing

# Fan-out bounds for concurrent remote calls
EMBEDDING_CONCURRENCY = int(os.getenv("EMBEDDING_CONCURRENCY", "8"))
USAGE_UPDATE_CONCURRENCY = int(os.getenv("USAGE_UPDATE_CONCURRENCY", "8"))

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
