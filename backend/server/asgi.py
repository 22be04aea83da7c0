"""
ASGI entry point for the adaptive quality service.

    uvicorn server.asgi:app

The .env file is loaded before AppConfig reads the environment.
"""

from dotenv import load_dotenv

load_dotenv()

# pylint: disable=wrong-import-position
from config import AppConfig
from server.app import create_app

app = create_app(AppConfig.load_from_env())
