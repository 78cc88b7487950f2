"""Main entry point for Agent Pipeline when run as a module."""

from dotenv import load_dotenv

from agent_pipeline.cli import app


# Load environment variables from .env file
load_dotenv()


if __name__ == "__main__":
    app()
