from __future__ import annotations

import logging

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from pddbot.bot.keyboards import menu_keyboard
from pddbot.bot.router import CommandRouter


logger = logging.getLogger(__name__)


async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.effective_chat or not update.message or update.message.text is None:
        return
    router: CommandRouter = context.bot_data["router"]
    reply = await router.handle(update.effective_chat.id, update.message.text)
    if reply is None:
        return
    await update.message.reply_text(reply.text, reply_markup=menu_keyboard(reply.keyboard))


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    # Log and keep serving other chats; the user simply gets no confirmation.
    logger.exception("Unhandled error while processing update", exc_info=context.error)


def build_handlers(app: Application, *, router: CommandRouter) -> None:
    app.bot_data["router"] = router
    # Commands arrive as plain text too; the router classifies everything.
    app.add_handler(MessageHandler(filters.TEXT, on_text))
    app.add_error_handler(on_error)
