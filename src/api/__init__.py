"""API layer for Mail Agent.

Contains:
- controllers/: FastAPI route handlers for chat, search, browse, Gmail and voice
"""
