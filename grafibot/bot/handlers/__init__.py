"""
Bot handlers registration.
"""

from fastapi import FastAPI

from grafibot.bot.handlers.webhook import router as webhook_router


def register_handlers(app: FastAPI) -> None:
    """Register all handlers to the application."""
    app.include_router(webhook_router)
