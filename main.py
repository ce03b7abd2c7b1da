"""Node optimizer — run locally with: python main.py or uvicorn main:app --reload."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env so NODEOPT_* vars are set when running python main.py
load_dotenv(Path(__file__).resolve().parent / ".env")

logging.basicConfig(
    level=(os.environ.get("NODEOPT_LOG_LEVEL") or "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

from nodeopt.api import app  # noqa: E402

__all__ = ["app"]

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
