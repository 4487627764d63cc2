"""
Mealwise - Prompt Logger.

Writes each generation prompt and its parsed response to a markdown file
for debugging. Enabled via MEALWISE_LOG_PROMPTS=1 or --log-prompts.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LOG_DIR = Path("prompt_logs")

_enabled = False
_session_id: str | None = None
_call_counter = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Turn prompt logging on or off for this process."""
    global _enabled
    _enabled = enabled
    if enabled:
        LOG_DIR.mkdir(exist_ok=True)


def _session_dir() -> Path:
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _format_response(response: Any) -> str:
    if hasattr(response, "model_dump"):
        response = response.model_dump()
    return f"```json\n{json.dumps(response, indent=2, default=str)}\n```\n"


def log_prompt(
    *,
    purpose: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response_model: str,
    response: Any = None,
    error: str | None = None,
    has_image: bool = False,
) -> Path | None:
    """
    Write one generation call to <LOG_DIR>/<session>/<NN>_<purpose>.md.

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not _enabled:
        return None

    global _call_counter
    _call_counter += 1

    filepath = _session_dir() / f"{_call_counter:02d}_{purpose}.md"

    image_line = "\n**Image:** attached" if has_image else ""
    content = f"""# Generation Call: {purpose}

**Time:** {datetime.now().isoformat()}
**Model:** {model}
**Response Model:** {response_model}{image_line}

---

## System Prompt

```
{system_prompt}
```

---

## User Prompt

```
{user_prompt}
```

---

## Response

"""

    if error:
        content += f"**ERROR:** {error}\n"
    elif response is not None:
        content += _format_response(response)
    else:
        content += "(No response)\n"

    try:
        filepath.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not write prompt log {filepath}: {e}")
        return None

    return filepath


def reset_session() -> None:
    """Start a new log session (tests, new CLI run)."""
    global _session_id, _call_counter
    _session_id = None
    _call_counter = 0
