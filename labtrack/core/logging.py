"""
Structured logging configuration for the maintenance service.

This module provides JSON log formatting, the named application loggers, and
specialized event loggers for the transaction maintenance sweep and for the
audit trail of manual triggers.
"""

import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

from pythonjsonlogger import jsonlogger


class RequestContextFilter(logging.Filter):
    """Add request context to log records."""

    def filter(self, record):
        if not hasattr(record, 'event_type'):
            record.event_type = 'application'
        if not hasattr(record, 'request_id'):
            record.request_id = None
        if not hasattr(record, 'user_id'):
            record.user_id = None
        if not hasattr(record, 'client_ip'):
            record.client_ip = None

        return True


class CustomJSONFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with request and sweep context."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        # Add timestamp in ISO format (timezone-aware)
        log_record['timestamp'] = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')

        # Add application context
        log_record['app_name'] = 'labtrack-maintenance'
        log_record['environment'] = os.getenv('ENVIRONMENT', 'production')
        log_record['version'] = os.getenv('APP_VERSION', '1.0.0')

        log_record['level'] = record.levelname

        context_fields = [
            'event_type', 'user_id', 'client_ip', 'request_id',
            'endpoint', 'method', 'sweep_id', 'pass_name', 'transaction_id'
        ]
        for field in context_fields:
            if hasattr(record, field) and getattr(record, field) is not None:
                log_record[field] = getattr(record, field)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json: bool = True
) -> None:
    """Setup logging configuration."""

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

    if enable_json:
        formatter = CustomJSONFormatter(
            fmt='%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RequestContextFilter())
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(RequestContextFilter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        force=True
    )

    # Named loggers keep their own handlers so they survive third-party reconfiguration
    for logger_name in ('app', 'security', 'audit', 'maintenance'):
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, log_level.upper()))
        logger.propagate = False
        logger.handlers.clear()

        for handler in handlers:
            logger.addHandler(handler)


app_logger = logging.getLogger('app')
security_logger = logging.getLogger('security')
audit_logger = logging.getLogger('audit')
maintenance_logger = logging.getLogger('maintenance')


class MaintenanceEventLogger:
    """Specialized logger for transaction maintenance sweeps."""

    def __init__(self):
        self.logger = maintenance_logger

    def sweep_started(self, sweep_id: str, trigger: str, evaluated_at: datetime):
        self.logger.info(
            "Transaction maintenance started",
            extra={
                'event_type': 'sweep_started',
                'sweep_id': sweep_id,
                'trigger': trigger,
                'evaluated_at': evaluated_at.isoformat(),
            }
        )

    def sweep_completed(self, sweep_id: str, counts: Dict[str, int]):
        self.logger.info(
            "Transaction maintenance complete",
            extra={
                'event_type': 'sweep_completed',
                'sweep_id': sweep_id,
                **counts,
            }
        )

    def sweep_failed(self, sweep_id: str, pass_name: str, error: Exception):
        self.logger.error(
            f"Transaction maintenance failed during {pass_name}: {error}",
            extra={
                'event_type': 'sweep_failed',
                'sweep_id': sweep_id,
                'pass_name': pass_name,
                'error_type': error.__class__.__name__,
            },
            exc_info=error,
        )

    def pass_completed(
        self,
        sweep_id: str,
        pass_name: str,
        candidates: int,
        written: int,
        skipped: int,
        conflicts: int
    ):
        self.logger.info(
            f"{pass_name}: {written} written, {skipped} skipped, {conflicts} conflicts",
            extra={
                'event_type': 'pass_completed',
                'sweep_id': sweep_id,
                'pass_name': pass_name,
                'candidates': candidates,
                'written': written,
                'skipped': skipped,
                'conflicts': conflicts,
            }
        )

    def record_skipped(self, sweep_id: str, pass_name: str, transaction_id: str, reason: str):
        self.logger.warning(
            f"Skipping transaction {transaction_id}: {reason}",
            extra={
                'event_type': 'record_skipped',
                'sweep_id': sweep_id,
                'pass_name': pass_name,
                'transaction_id': transaction_id,
                'reason': reason,
            }
        )

    def write_conflict(self, sweep_id: str, pass_name: str, transaction_id: str, expected_version: int):
        self.logger.warning(
            f"Transaction {transaction_id} changed since it was read, deferring to next sweep",
            extra={
                'event_type': 'write_conflict',
                'sweep_id': sweep_id,
                'pass_name': pass_name,
                'transaction_id': transaction_id,
                'expected_version': expected_version,
            }
        )


class AuditLogger:
    """Specialized logger for audit trails."""

    def __init__(self):
        self.logger = audit_logger

    def log_admin_action(
        self,
        user_id: Optional[int],
        action: str,
        request_id: Optional[str],
        details: Optional[Dict[str, Any]] = None
    ):
        """Log privileged actions such as manual maintenance runs."""
        self.logger.info(
            f"Admin action: {action}",
            extra={
                'event_type': 'admin_action',
                'user_id': user_id,
                'action': action,
                'request_id': request_id,
                'details': details or {},
            }
        )


maintenance_event_logger = MaintenanceEventLogger()
audit_event_logger = AuditLogger()


def generate_request_id() -> str:
    """Generate unique request ID for tracing."""
    return str(uuid.uuid4())


def get_client_ip(request) -> str:
    """Extract client IP from request with proxy support."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return getattr(request.client, "host", "unknown")


# Initialize logging on module import
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE")
enable_json = os.getenv("LOG_FORMAT", "json").lower() == "json"

setup_logging(
    log_level=log_level,
    log_file=log_file,
    enable_json=enable_json
)
