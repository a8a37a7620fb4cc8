#!/usr/bin/env python3
"""
Campus Chat terminal client.

Signs in as one user and drives the messaging core from the terminal:
list and open conversations, send messages and attachments, react to
messages. With --offline the client runs against the seeded mirror store
and needs no backend.

Usage:
    python chat_main.py --user-id 3
    python chat_main.py --user-id 4 --offline
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from campus_chat.attachments.pipeline import attachment_label
from campus_chat.chat import MessagingSubsystem
from campus_chat.messaging.config import load_config
from campus_chat.messaging.exceptions import UploadValidationError
from campus_chat.messaging.types import ChatUser, Conversation, CurrentUser
from campus_chat.reactions.aggregator import EMOJI_CATEGORIES
from campus_chat.thread.rendering import DayDivider, RenderedMessage
from campus_chat.utils.load_env import load_env
from campus_chat.utils.logger_config import get_logger, setup_logging

logger = get_logger(__name__)

HELP_TEXT = """
Commands:
  /list                     Show your conversations
  /users [name]             Show people you can message
  /start <userId>           Open (or create) a conversation with a user
  /open <conversationId>    Open a conversation
  /close                    Close the open conversation
  /attach <path>            Attach a local file to the next message
  /remove <attachmentId>    Drop a pending attachment
  /react <messageId> <emoji>  Toggle a reaction
  /emojis                   Show the emoji palette
  /status                   Show client status
  /help                     Show this help
  /quit                     Exit
Any other text is sent to the open conversation.
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Campus Chat terminal client")
    parser.add_argument("--user-id", required=True, help="Id of the user to sign in as")
    parser.add_argument("--offline", action="store_true", help="Use the seeded local store only")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--log-level", default="WARNING", help="Console log level")
    return parser.parse_args(argv)


def _coerce_id(value: str):
    return int(value) if value.isdigit() else value


def print_conversations(chat: MessagingSubsystem, conversations: List[Conversation]) -> None:
    if not conversations:
        print(f"📭 {chat.directory.empty_conversations_text()}")
        return
    print(f"\n💬 Conversations ({len(conversations)}):")
    for conversation in conversations:
        other = conversation.other_participant(chat.current_user.id)
        when = chat.directory.format_time(conversation)
        unread = f" [{conversation.unread_count} unread]" if conversation.unread_count else ""
        print(f"  #{conversation.id} {other.name} ({other.role}) {when}{unread}")
        if conversation.last_message:
            print(f"      {conversation.last_message}")


def print_users(chat: MessagingSubsystem, users: List[ChatUser], query: Optional[str]) -> None:
    if not users:
        print(f"👤 {chat.directory.empty_users_text(query)}")
        return
    for user in users:
        print(f"  {user.user_id}: {user.name} ({user.role})")


def print_thread(chat: MessagingSubsystem) -> None:
    empty = chat.thread.empty_state_text()
    if empty:
        print(f"📭 {empty}")
        return

    for item in chat.thread.render():
        if isinstance(item, DayDivider):
            print(f"\n  ── {item.label} ──")
            continue
        print_message(item)

    if chat.thread.typing_indicator:
        print(f"  ✏️  {chat.thread.typing_indicator}")


def print_message(item: RenderedMessage) -> None:
    sender = "📤 You" if item.is_mine else f"📥 {item.message.sender_name}"
    print(f"  [{item.message.id}] {item.time_label} {sender}: {item.body_text}")
    for view in item.attachments:
        target = view.preview_url or view.attachment.file_url
        print(f"      📎 {view.label} [{view.icon}] {target}")
    if item.reactions:
        reactions = " ".join(f"{r.emoji}{r.count}{'*' if r.mine else ''}" for r in item.reactions)
        print(f"      {reactions}")


async def resolve_user(chat: MessagingSubsystem, user_id) -> Optional[CurrentUser]:
    for user in await chat.gateway.list_users():
        if user.user_id == user_id:
            return CurrentUser(id=user.user_id, name=user.name, role=user.role)
    return None


async def handle_command(chat: MessagingSubsystem, line: str) -> bool:
    """Run one input line. Returns False when the client should exit."""
    command, _, rest = line.partition(" ")
    rest = rest.strip()

    if command in ("/quit", "/exit"):
        return False

    if command == "/help":
        print(HELP_TEXT)
    elif command == "/list":
        result = await chat.list_conversations()
        print_conversations(chat, result.value or [])
    elif command == "/users":
        result = await chat.list_chat_users(rest or None)
        print_users(chat, result.value or [], rest or None)
    elif command == "/start":
        users = (await chat.list_chat_users()).value or []
        other = next((u for u in users if str(u.user_id) == rest), None)
        if other is None:
            print(f"❌ Unknown user: {rest}")
            return True
        result = await chat.start_conversation(other)
        if result.success:
            print_thread(chat)
        else:
            print(f"❌ {result.error}")
    elif command == "/open":
        result = await chat.select_conversation(_coerce_id(rest))
        if result.success:
            print_thread(chat)
        else:
            print(f"❌ {result.error}")
    elif command == "/close":
        chat.deselect_conversation()
        print("👋 Conversation closed")
    elif command == "/attach":
        try:
            attachment = await chat.pipeline.upload_path(rest)
        except UploadValidationError as e:
            print(f"❌ {e}")
            return True
        chat.thread.composer.pending.add([attachment])
        print(f"📎 Attached {attachment_label(attachment)} (id {attachment.id})")
    elif command == "/remove":
        if chat.remove_attachment(rest):
            print("🗑️  Attachment removed")
        else:
            print(f"❌ No pending attachment {rest}")
    elif command == "/react":
        message_id, _, emoji = rest.partition(" ")
        result = await chat.toggle_reaction(_coerce_id(message_id), emoji.strip())
        if result.success:
            print_thread(chat)
        else:
            print(f"❌ {result.error}")
    elif command == "/emojis":
        for category in EMOJI_CATEGORIES:
            print(f"  {category['name']}: {' '.join(category['emojis'])}")
    elif command == "/status":
        for key, value in chat.get_status().items():
            print(f"  {key}: {value}")
    elif line.startswith("/"):
        print(f"❓ Unknown command {command} (try /help)")
    else:
        result = await chat.send_message(line)
        if result.success:
            print_thread(chat)
        else:
            print(f"⚠️  {result.error}")

    return True


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    if args.offline:
        config = config.model_copy(update={"remote_enabled": False, "seed_mirror": True})

    chat = MessagingSubsystem(config)
    try:
        user = await resolve_user(chat, _coerce_id(args.user_id))
        if user is None:
            print(f"❌ No user with id {args.user_id}")
            return 1

        chat.login(user)
        print(f"✅ Signed in as {user.name} ({user.role})")
        if chat.get_status()["fallback_active"]:
            print("📦 Offline mode: using the local store")
        print(HELP_TEXT)

        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, input, "> ")
            line = line.strip()
            if not line:
                continue
            if not await handle_command(chat, line):
                break
    except EOFError:
        pass
    finally:
        await chat.close()
    return 0


def signal_handler(signum, frame):
    """Handle interrupt signals gracefully"""
    print("\n\n🛑 Stopping chat client...")
    sys.exit(0)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    load_env(args.env_file)
    setup_logging(
        log_level=getattr(logging, args.log_level.upper(), logging.WARNING),
        console_output=True,
        file_output=True,
    )

    signal.signal(signal.SIGTERM, signal_handler)

    print("💬 Campus Chat")
    print("=" * 60)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n🛑 Received interrupt signal")
        return 0
    except Exception as e:
        print(f"\n❌ Error: {e}")
        logger.error(f"Error in main: {e}")
        return 1
    finally:
        print("👋 Goodbye!")


if __name__ == "__main__":
    sys.exit(main())
