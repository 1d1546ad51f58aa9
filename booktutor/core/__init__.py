# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for BookTutor.

This package contains the tutoring engine and its shared building blocks:
- config: Application configuration and settings
- intelligence: LLM client and streaming tool-call reassembly
- tools: Tool base classes and the dispatching registry
- memory: Token-budgeted conversation window
- orchestration: Tutor agent control loop, event channel, agent cache
"""
