"""Entry point for running the feed filter as a module.

Usage:
    python -m feedfilter validate-config
    python -m feedfilter --help
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that need env vars

from feedfilter.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
