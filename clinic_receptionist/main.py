"""
Main application entry point for the clinic receptionist.
"""

import uvicorn
from dotenv import load_dotenv

# Make OPENAI_API_KEY visible to the OpenAI SDKs before anything is built
load_dotenv()

from .api.app import create_app  # noqa: E402

# Create the FastAPI application
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "clinic_receptionist.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True
    )
