"""
Shared utilities for Streamcord.

- **logger.py**: Session-wide logging with a prompt_toolkit console handler and
  a rotating log file under ``logs/``.
- **discord_utils.py**: Small stateless Discord helpers (self-authored message
  filtering, channel lookup, user descriptions).
"""
