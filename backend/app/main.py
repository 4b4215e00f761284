import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from app.core.app import create_app


def main() -> FastAPI:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return create_app()


application = main()
