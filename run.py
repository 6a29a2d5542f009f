#!/usr/bin/env python3
"""
SecureOnline Banking Entry Point

Starts the FastAPI server with settings taken from SECUREBANK_* variables.
"""

import uvicorn

from secure_banking.api import create_app
from secure_banking.config import get_config


def main() -> None:
    settings = get_config()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
