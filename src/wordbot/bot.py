"""Telegram front end: add words, edit review settings, run review sessions."""
import html
import logging
from typing import List, Optional, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackContext

from wordbot.config import MARGIN_PRESETS, MAX_MARGIN_OF_ERROR, MAX_WORD_COUNT, WORD_COUNT_PRESETS
from wordbot.models.base import SessionLocal
from wordbot.models.review_models import AskIn, PriorityMode, ReviewMode
from wordbot.services.review_engine import Phase, ReviewState
from wordbot.services.review_service import ReviewLog
from wordbot.services.review_session import ReviewSession
from wordbot.services.session_builder import build_queue
from wordbot.services.settings_service import SettingsService
from wordbot.services.word_service import PriorityModeNotImplementedError, WordService

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
MAIN_MENU, ADDING_WORDS, REVIEWING, EDITING_SETTING = range(4)

# Button texts
MENU = "🏠 Menu"
ADD_WORD = "📝 Add Words"
REVIEW_SETTINGS = "⚙️ Review Settings"
START_REVIEW = "💡 Start Review"
NEXT = "➡️ Next"
QUIT = "✖️ Quit"
CUSTOM = "✏️ Custom…"

REVIEW_MODE_LABELS = {
    ReviewMode.NATIVE: "Native",
    ReviewMode.FOREIGN: "Foreign",
    ReviewMode.BOTH: "Both (Random)",
}

PRIORITY_MODE_LABELS = {
    PriorityMode.RANDOM: "Random",
    PriorityMode.LESS_REVIEWED: "Less Reviewed",
    PriorityMode.OFTEN_FAILED: "Often Failed",
    PriorityMode.RECENT: "Recent",
}

SESSION_KEY = "review_session"
CUSTOM_SETTING_KEY = "custom_setting"


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BACK_TO_MENU = [[InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]]
KB_REVIEW_FEEDBACK = InlineKeyboardMarkup([[
    InlineKeyboardButton(NEXT, callback_data="review_next"),
    InlineKeyboardButton(QUIT, callback_data="review_quit"),
]])
KB_REVIEW_PROMPT = InlineKeyboardMarkup([[InlineKeyboardButton(QUIT, callback_data="review_quit")]])


async def log_received(update: Update, context_type: str) -> None:
    """Log incoming update."""
    if update.callback_query: txt = f" {update.callback_query.data}"
    elif update.message: txt = f" {update.message.text}"
    else: txt = ""
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def reply(update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
    """Edit the message behind a button press, or answer a text message."""
    if update.callback_query:
        await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
    else:
        await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")


def parse_word_line(line: str) -> Optional[Tuple[str, str, str]]:
    """Split `native - foreign [- description]`. Returns None if a side is missing."""
    parts = [part.strip() for part in line.split(" - ", 2)]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    description = parts[2] if len(parts) == 3 else ""
    return parts[0], parts[1], description


def format_prompt(state: ReviewState) -> str:
    """Prompt message for the current item."""
    item = state.current
    answer_language = "foreign" if item.ask_in == AskIn.NATIVE else "native"
    return (
        f"{state.position + 1} / {len(state.queue)} (next cycle: {len(state.recycle)})\n\n"
        f"<b>{html.escape(item.prompt)}</b>\n\n"
        f"Enter your answer in {answer_language} language"
    )


def format_feedback(state: ReviewState) -> str:
    """Feedback message after a scored answer."""
    item = state.current
    if state.phase == Phase.FEEDBACK_CORRECT:
        message = f"✅ Correct!\n\n<b>{html.escape(item.prompt)}</b> - <i>{html.escape(item.expected)}</i>"
    else:
        message = (
            f"❌ Wrong. The answer is:\n\n<b>{html.escape(state.answer)}</b>\n\n"
            f"Try again in {state.lock_seconds:g} seconds."
        )
    if item.description:
        message += f"\n\n{html.escape(item.description)}"
    return message


def end_review(context: CallbackContext) -> None:
    """Close and forget the user's review session, if any."""
    session = context.user_data.pop(SESSION_KEY, None)
    if session:
        session.close()


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Show main menu."""
    await log_received(update, "start")
    end_review(context)
    context.user_data.pop(CUSTOM_SETTING_KEY, None)

    keyboard = [
        [InlineKeyboardButton(ADD_WORD, callback_data="add_words")],
        [InlineKeyboardButton(REVIEW_SETTINGS, callback_data="settings")],
        [InlineKeyboardButton(START_REVIEW, callback_data="start_review")],
    ]
    await reply(
        update,
        f"Welcome, {html.escape(update.effective_user.first_name or '')}! 👋\n\n"
        "Add word pairs, then review them.\n"
        "What would you like to do?",
        InlineKeyboardMarkup(keyboard),
    )
    return MAIN_MENU


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    if not query.data.startswith("review_"):
        end_review(context)

    if query.data == "back_to_menu":
        return await handle_start(update, context)
    elif query.data == "add_words":
        return await add_words(update, context)
    elif query.data == "settings":
        return await show_settings(update, context)
    elif query.data.startswith("set_"):
        return await handle_set_setting(update, context)
    elif query.data.startswith("custom_"):
        return await ask_custom_setting(update, context)
    elif query.data == "start_review":
        return await start_review(update, context)
    elif query.data.startswith("review_"):
        return await handle_review_action(update, context)

    return MAIN_MENU


async def handle_message(update: Update, context: CallbackContext) -> int:
    """Handle stray messages in the main menu."""
    await log_received(update, "message")
    await update.message.reply_text("Please start with /start")
    return MAIN_MENU


async def add_words(update: Update, context: CallbackContext) -> int:
    """Ask for word pairs."""
    await reply(
        update,
        "📝 Please enter words, one pair per line:\n"
        "<i>native - foreign - optional description</i>",
        InlineKeyboardMarkup(KB_BACK_TO_MENU),
    )
    return ADDING_WORDS


async def handle_add_words(update: Update, context: CallbackContext) -> int:
    """Store the word pairs from a message."""
    await log_received(update, "add")

    saved: List[str] = []
    rejected: List[str] = []
    db = SessionLocal()
    try:
        word_service = WordService(db)
        for line in update.message.text.splitlines():
            if not line.strip():
                continue
            parsed = parse_word_line(line)
            if not parsed:
                rejected.append(line.strip())
                continue
            word = word_service.add_word(*parsed)
            saved.append(word.foreign)
    finally:
        db.close()

    message = ""
    if saved:
        message += f"Saved {len(saved)} word{'s' if len(saved) > 1 else ''}: {html.escape(', '.join(saved))}\n"
    if rejected:
        message += f"Skipped (both native and foreign are required): {html.escape('; '.join(rejected))}\n"
    message += "\nSend more, or go back to the menu."

    await update.message.reply_text(
        message,
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu"),
             InlineKeyboardButton(START_REVIEW, callback_data="start_review")],
        ]),
        parse_mode="HTML",
    )
    return ADDING_WORDS


async def show_settings(update: Update, context: CallbackContext) -> int:
    """Show review settings with the current choice marked."""
    db = SessionLocal()
    try:
        current = SettingsService(db, update.effective_user.id).load_or_default()
    finally:
        db.close()

    def mark(label: str, selected: bool) -> str:
        return f"• {label}" if selected else label

    keyboard = [
        [InlineKeyboardButton(mark(str(n), current.word_count == n), callback_data=f"set_wordCount_{n}")
         for n in WORD_COUNT_PRESETS]
        + [InlineKeyboardButton(CUSTOM, callback_data="custom_wordCount")],
        [InlineKeyboardButton(mark(label, current.review_mode == mode), callback_data=f"set_reviewMode_{mode.value}")
         for mode, label in REVIEW_MODE_LABELS.items()],
        [InlineKeyboardButton(mark(label, current.priority_mode == mode), callback_data=f"set_priorityMode_{mode.value}")
         for mode, label in PRIORITY_MODE_LABELS.items()],
        [InlineKeyboardButton(mark(str(n), current.margin_of_error == n), callback_data=f"set_marginOfError_{n}")
         for n in MARGIN_PRESETS]
        + [InlineKeyboardButton(CUSTOM, callback_data="custom_marginOfError")],
        [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu"),
         InlineKeyboardButton(START_REVIEW, callback_data="start_review")],
    ]
    await reply(
        update,
        "⚙️ Review Settings\n\n"
        f"Number of words: {current.word_count}\n"
        f"Review mode: {REVIEW_MODE_LABELS[current.review_mode]}\n"
        f"Priority: {PRIORITY_MODE_LABELS[current.priority_mode]}\n"
        f"Margin of error: {current.margin_of_error}",
        InlineKeyboardMarkup(keyboard),
    )
    return MAIN_MENU


SETTING_FIELDS = {
    "wordCount": "word_count",
    "reviewMode": "review_mode",
    "priorityMode": "priority_mode",
    "marginOfError": "margin_of_error",
}


async def handle_set_setting(update: Update, context: CallbackContext) -> int:
    """Save one setting from a `set_<field>_<value>` button."""
    _, name, value = update.callback_query.data.split("_", 2)
    field_name = SETTING_FIELDS.get(name)
    if not field_name:
        logger.warning(f"Unknown setting {name!r}")
        return await show_settings(update, context)

    db = SessionLocal()
    try:
        SettingsService(db, update.effective_user.id).update(**{field_name: value})
    except ValueError as e:
        logger.warning(f"Rejected setting {name}={value!r}: {e}")
    finally:
        db.close()
    return await show_settings(update, context)


CUSTOM_LIMITS = {
    "wordCount": ("number of words", 1, MAX_WORD_COUNT),
    "marginOfError": ("margin of error", 0, MAX_MARGIN_OF_ERROR),
}


async def ask_custom_setting(update: Update, context: CallbackContext) -> int:
    """Ask for a typed value from a `custom_<field>` button."""
    name = update.callback_query.data.split("_", 1)[1]
    if name not in CUSTOM_LIMITS:
        logger.warning(f"Unknown custom setting {name!r}")
        return await show_settings(update, context)

    label, low, high = CUSTOM_LIMITS[name]
    context.user_data[CUSTOM_SETTING_KEY] = name
    await reply(
        update,
        f"✏️ Enter the {label} ({low}-{high}):",
        InlineKeyboardMarkup([[InlineKeyboardButton(msg_back_to(REVIEW_SETTINGS), callback_data="settings")]]),
    )
    return EDITING_SETTING


async def handle_custom_setting(update: Update, context: CallbackContext) -> int:
    """Save a typed custom value, or ask again if it is out of range."""
    await log_received(update, "custom")

    name = context.user_data.get(CUSTOM_SETTING_KEY)
    if name not in CUSTOM_LIMITS:
        return await handle_start(update, context)

    label, low, high = CUSTOM_LIMITS[name]
    text = (update.message.text or "").strip()
    try:
        value = int(text)
    except ValueError:
        value = None
    if value is None or not low <= value <= high:
        await update.message.reply_text(
            f"Please enter a whole number from {low} to {high} for the {label}.",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton(msg_back_to(REVIEW_SETTINGS), callback_data="settings")],
            ]),
        )
        return EDITING_SETTING

    db = SessionLocal()
    try:
        SettingsService(db, update.effective_user.id).update(**{SETTING_FIELDS[name]: value})
    finally:
        db.close()
    context.user_data.pop(CUSTOM_SETTING_KEY, None)
    return await show_settings(update, context)


async def start_review(update: Update, context: CallbackContext) -> int:
    """Load settings, fetch words and start a review session."""
    chat_id = update.effective_chat.id
    db = SessionLocal()
    try:
        review_settings = SettingsService(db, update.effective_user.id).load_or_default()
        words = WordService(db).fetch(
            review_settings.word_count,
            review_settings.review_mode,
            review_settings.priority_mode,
        )
    except PriorityModeNotImplementedError as e:
        await reply(
            update,
            f"⚠️ {html.escape(str(e))}.\nPlease choose another priority.",
            InlineKeyboardMarkup([
                [InlineKeyboardButton(msg_back_to(REVIEW_SETTINGS), callback_data="settings")],
            ]),
        )
        return MAIN_MENU
    finally:
        db.close()

    queue = build_queue(words, review_settings.review_mode)
    if not queue:
        await reply(
            update,
            "No words to review.\nAdd some words first!",
            InlineKeyboardMarkup([
                [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu"),
                 InlineKeyboardButton(ADD_WORD, callback_data="add_words")],
            ]),
        )
        return MAIN_MENU

    bot = context.bot
    application = context.application

    def on_lock_expired(session: ReviewSession) -> None:
        if session.phase == Phase.PROMPTING:
            application.create_task(
                bot.send_message(
                    chat_id=chat_id,
                    text=format_prompt(session.state),
                    reply_markup=KB_REVIEW_PROMPT,
                    parse_mode="HTML",
                )
            )

    end_review(context)
    session = ReviewSession(
        queue,
        review_settings.margin_of_error,
        ReviewLog(),
        on_change=on_lock_expired,
    )
    context.user_data[SESSION_KEY] = session

    await reply(update, format_prompt(session.state), KB_REVIEW_PROMPT)
    return REVIEWING


async def handle_review_answer(update: Update, context: CallbackContext) -> int:
    """Score a typed answer."""
    await log_received(update, "review")

    session: Optional[ReviewSession] = context.user_data.get(SESSION_KEY)
    if not session or session.is_finished:
        return await handle_start(update, context)

    if session.phase == Phase.FEEDBACK_WRONG:
        await update.message.reply_text("⏳ Please wait for the retry.")
        return REVIEWING
    if session.phase == Phase.FEEDBACK_CORRECT:
        await update.message.reply_text(f"Press {NEXT} to continue.", reply_markup=KB_REVIEW_FEEDBACK)
        return REVIEWING

    phase = session.submit(update.message.text or "")
    keyboard = KB_REVIEW_FEEDBACK if phase == Phase.FEEDBACK_CORRECT else KB_REVIEW_PROMPT
    await update.message.reply_text(format_feedback(session.state), reply_markup=keyboard, parse_mode="HTML")
    return REVIEWING


async def handle_review_action(update: Update, context: CallbackContext) -> int:
    """Next and Quit buttons."""
    query = update.callback_query
    session: Optional[ReviewSession] = context.user_data.get(SESSION_KEY)
    if not session or session.is_finished:
        return await handle_start(update, context)

    if query.data == "review_quit":
        session.quit()
        context.user_data.pop(SESSION_KEY, None)
        return await handle_start(update, context)

    if session.phase != Phase.FEEDBACK_CORRECT:
        return REVIEWING

    phase = session.submit()
    if phase == Phase.COMPLETE:
        context.user_data.pop(SESSION_KEY, None)
        await reply(
            update,
            "🎉 Review complete!",
            InlineKeyboardMarkup([
                [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu"),
                 InlineKeyboardButton(START_REVIEW, callback_data="start_review")],
            ]),
        )
        return MAIN_MENU

    await reply(update, format_prompt(session.state), KB_REVIEW_PROMPT)
    return REVIEWING
