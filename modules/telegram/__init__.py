"""
Telegram Bot Module.

aiogram v3 bot that opens the Eco Touch Mini App, running in webhook mode
inside the FastAPI application (gated by channel_telegram_enabled).

Structure:
    modules/telegram/
    ├── bot.py               # Bot and dispatcher setup
    ├── webhook.py           # Webhook endpoint for FastAPI
    ├── handlers/common.py   # /start, /help, /badges
    ├── middlewares/         # Logging, per-user rate limiting
    ├── keyboards/common.py  # Mini App launch buttons
    └── services/            # Proactive mission and badge notifications

The bot is a thin presentation layer; badge lookups go through the
backend services.
"""
