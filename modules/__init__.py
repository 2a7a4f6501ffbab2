"""
Eco Touch application packages.

- backend/: FastAPI API, missions, blockchain integration, tasks, events
- telegram/: Telegram bot (aiogram v3) and user notifications
"""
