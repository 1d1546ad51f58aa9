# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the BookTutor API with uvicorn: ``python -m booktutor``."""

import uvicorn

from booktutor.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "booktutor.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
