# client/history.py
from datetime import datetime, timezone
from typing import Iterable, List, Mapping, Optional

TEXT_SOURCES = {"text_input", "text_chat"}
VOICE_SOURCES = {"voice", "voice_conversation"}


def is_voice(chat: Mapping) -> bool:
    return chat.get("source") in VOICE_SOURCES


def is_text(chat: Mapping) -> bool:
    source = chat.get("source")
    return not source or source in TEXT_SOURCES


def source_label(chat: Mapping) -> str:
    return "Voice" if is_voice(chat) else "Text"


def filter_chats(chats: Iterable[Mapping], kind: str = "all", query: str = "") -> List[Mapping]:
    """Chats of ``kind`` ("all" | "text" | "voice") whose message or response contains ``query``."""
    if kind not in ("all", "text", "voice"):
        raise ValueError(f"unknown chat filter: {kind}")
    out = list(chats)
    if kind == "text":
        out = [c for c in out if is_text(c)]
    elif kind == "voice":
        out = [c for c in out if is_voice(c)]
    q = (query or "").lower()
    if q:
        out = [
            c for c in out
            if q in (c.get("message") or c.get("request") or "").lower()
            or q in (c.get("response") or "").lower()
        ]
    return out


def _parse(value) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def format_timestamp(value, now: Optional[datetime] = None) -> str:
    dt = _parse(value)
    now = _parse(now) if now is not None else datetime.now(timezone.utc)
    hours = (now - dt).total_seconds() / 3600
    if hours < 24:
        return dt.strftime("%H:%M")
    if hours < 168:
        return dt.strftime("%a %H:%M")
    return f"{dt.strftime('%b')} {dt.day}"
