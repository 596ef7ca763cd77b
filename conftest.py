"""Global pytest configuration."""

import os

# Keep tests offline and independent of any local .env before settings are imported
os.environ.setdefault("DOCSCOPE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.pop("DOCSCOPE_OPENAI_API_KEY", None)
os.environ.pop("DOCSCOPE_MISTRAL_API_KEY", None)
os.environ.pop("DOCSCOPE_CONVERSION_SERVICE_URL", None)
