"""BookTutor Backend.

Conversational tutoring core that teaches a student through a book with an
LLM, streaming tool-calling turns and a token-budgeted conversation window.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
