import logging
from typing import Optional


def setup_logger(name: str = "gitread", level: str = "INFO") -> logging.Logger:
    """Setup standardized logger with UTF-8 support."""
    logger = logging.getLogger(name)

    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        if hasattr(handler.stream, 'reconfigure'):
            handler.stream.reconfigure(encoding='utf-8')

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def log_tool_call(logger: logging.Logger,
                  tool: str,
                  success: bool,
                  duration_ms: float,
                  repository: Optional[str] = None,
                  result_summary: Optional[str] = None,
                  params: Optional[dict] = None,
                  error: Optional[str] = None) -> None:
    """Log one API tool invocation in a structured format."""

    log_data = {
        "tool": tool,
        "success": success,
        "duration_ms": round(duration_ms, 1)
    }

    if repository:
        log_data["repository"] = repository

    if params:
        log_data["params"] = _sanitize_params(params)

    if result_summary:
        log_data["result"] = result_summary

    if error:
        log_data["error"] = error

    status_icon = "✅" if success else "❌"
    tool_desc = tool.replace("_", " ").title()

    if error:
        logger.error(f"{status_icon} {tool_desc}: {log_data}")
    else:
        logger.info(f"{status_icon} {tool_desc}: {log_data}")


def _sanitize_params(params: dict) -> dict:
    """Drop empty values and shorten long strings and lists for logging."""
    sanitized = {}
    for key, value in params.items():
        if value in (None, "", [], {}):
            continue
        if isinstance(value, str) and len(value) > 200:
            sanitized[key] = value[:197] + "..."
        elif isinstance(value, list) and len(value) > 10:
            sanitized[key] = value[:10] + [f"... +{len(value) - 10}"]
        else:
            sanitized[key] = value
    return sanitized

