"""
Test environment defaults.

shared.config builds its settings singleton at import time, so required
variables must exist before any test module imports it.
"""

import os

TEST_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SERVICE_KEY": "test_service_key_1234567890123456789012345678901234567890",
    "REDIS_URL": "redis://localhost:6379",
    "OPENAI_API_KEY": "sk-test123456789012345678901234567890",
    "REPLICATE_API_TOKEN": "r8_test123456789012345678901234567890",
}

for key, value in TEST_ENV.items():
    os.environ.setdefault(key, value)
