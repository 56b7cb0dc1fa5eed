"""Outgoing email with a local JSONL copy.

Mail goes through Django's configured backend (console in development). Each
message is also appended to ``EMAIL_OUTBOX_LOG`` so the placement cell can
audit what students were told.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from django.conf import settings
from django.core.mail import send_mail


def _append_jsonl(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, ensure_ascii=False) + "\n")


def send_portal_email(
    *,
    to_emails: Iterable[str],
    subject: str,
    message: str,
    tag: str = "EMAIL",
    meta: dict[str, Any] | None = None,
    from_email: str | None = None,
) -> int:
    """Send email via Django's backend and record it in the outbox log."""
    recipients = [e for e in to_emails if e]
    if not recipients:
        return 0

    log_path = getattr(settings, "EMAIL_OUTBOX_LOG", None)
    if log_path:
        _append_jsonl(
            Path(str(log_path)),
            {
                "ts": datetime.now(timezone.utc).isoformat(),
                "tag": tag,
                "to": recipients,
                "subject": subject,
                "message": message,
                "meta": dict(meta or {}),
            },
        )

    return send_mail(
        subject=subject,
        message=message,
        from_email=(from_email or getattr(settings, "DEFAULT_FROM_EMAIL", "placements@portal.local")),
        recipient_list=recipients,
        fail_silently=False,
    )
