import os
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")  # service role, bypasses RLS
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "changeme")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")
APP_NAME = os.getenv("APP_NAME", "LUXE Storefront Backend")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Storage
PRODUCT_IMAGE_BUCKET = os.getenv("PRODUCT_IMAGE_BUCKET", "product-images")

# Support auto-reply (any OpenAI compatible chat completions endpoint)
LLM_API_URL = os.getenv("LLM_API_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
LLM_API_KEY = os.getenv("LLM_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "google/gemini-2.5-flash")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# Payments
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")

# Pincode autofill
POSTAL_API_URL = os.getenv("POSTAL_API_URL", "https://api.postalpincode.in/pincode")

# Stale order reconciliation
CRON_SECRET = os.getenv("CRON_SECRET")
STALE_ORDER_MINUTES = int(os.getenv("STALE_ORDER_MINUTES", "30"))
