# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets: keep the LLM key in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "STUDYFLOW_APP_NAME": "App display name (default: studyflow).",
    "STUDYFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Identity
    "STUDYFLOW_OWNER_ID": "Owner whose tasks and sessions the console works on (default: local).",
    # LLM / OpenRouter
    "STUDYFLOW_LLM_API_KEY": "API key for the session planner (OPENROUTER_API_KEY is also read).",
    "STUDYFLOW_LLM_BASE_URL": "OpenAI-compatible base URL (default: https://openrouter.ai/api/v1).",
    "STUDYFLOW_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "STUDYFLOW_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "STUDYFLOW_APP_TITLE": "Optional OpenRouter metadata header title.",
    "STUDYFLOW_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Give up on a model without a first token after this (default: 30).",
    "STUDYFLOW_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout, never below the first-token timeout (default: 60).",
    "STUDYFLOW_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    # Generation
    "STUDYFLOW_GENERATION_HORIZON_DAYS": "How many days ahead /generate plans (default: 7).",
    # Paths (gitignored)
    "STUDYFLOW_DATA_DIR": "Local data directory, also holds studyflow.log (default: .local/studyflow).",
    "STUDYFLOW_DB_PATH": "SQLite database path (default: <data_dir>/studyflow.sqlite3).",
}
