"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- job_id
- user_id
- payment_id
- duration_ms

Usage:
    from reelforge.utils.logging import configure_logging, log_job_submitted

    configure_logging('reelforge-api', 'INFO')
    log_job_submitted(logger, job_id='123', user_id='456', duration_seconds=10, credit_cost=2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. reelforge-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        # Create JSON formatter
        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Create console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        # Configure root logger
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    job_id: Optional[str] = None,
    user_id: Optional[str] = None,
    payment_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        job_id: Optional job ID
        user_id: Optional user ID
        payment_id: Optional payment ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if job_id:
        extra["job_id"] = job_id
    if user_id:
        extra["user_id"] = user_id
    if payment_id:
        extra["payment_id"] = payment_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Job event functions

def log_job_submitted(
    logger: logging.Logger,
    job_id: str,
    user_id: str,
    duration_seconds: int,
    credit_cost: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a job accepted by the generation provider.

    Args:
        logger: Logger instance
        job_id: Job ID (required)
        user_id: User ID (required)
        duration_seconds: Requested video duration
        credit_cost: Credits debited
        duration_ms: Optional request duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="job_submitted",
        job_id=job_id,
        user_id=user_id,
        duration_ms=duration_ms,
        video_duration_seconds=duration_seconds,
        credit_cost=credit_cost,
        **kwargs
    )

    logger.info(f"Job submitted: {job_id}", extra=extra)


def log_job_transition(
    logger: logging.Logger,
    job_id: str,
    user_id: str,
    status: str,
    error: Optional[str] = None,
    **kwargs
):
    """Log a job reaching a terminal state."""
    extra = _build_log_extra(
        event="job_transition",
        job_id=job_id,
        user_id=user_id,
        status=status,
        **kwargs
    )
    if error:
        extra["error"] = str(error)

    message = f"Job {job_id} -> {status}"
    if error:
        message += f" - {error}"
        logger.warning(message, extra=extra)
    else:
        logger.info(message, extra=extra)


def log_job_refunded(
    logger: logging.Logger,
    job_id: str,
    user_id: str,
    credits: int,
    reason: str,
    **kwargs
):
    """
    Log a refund of a job's credits.

    Args:
        logger: Logger instance
        job_id: Job ID (required)
        user_id: User ID (required)
        credits: Credits returned
        reason: "submission_failed" or "generation_failed"
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="job_refunded",
        job_id=job_id,
        user_id=user_id,
        credits=credits,
        reason=reason,
        **kwargs
    )

    logger.info(f"Refunded {credits} credits for job {job_id} ({reason})", extra=extra)


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    job_id: Optional[str] = None,
    **kwargs
):
    """
    Log external provider request event.

    Args:
        logger: Logger instance
        provider: Provider name (veo, snippe, stripe) (required)
        operation: Operation name (start_generation, poll_generation, create_checkout) (required)
        duration_ms: Optional duration in milliseconds
        job_id: Optional job ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        job_id=job_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )

    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    job_id: Optional[str] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log external provider failure event.

    Args:
        logger: Logger instance
        provider: Provider name (required)
        operation: Operation name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        job_id: Optional job ID
        include_traceback: Whether to include stack trace (default: False for provider failures)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_failure",
        job_id=job_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Provider failure: {provider}.{operation} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
        else:
            logger.error(message, extra=extra)
    else:
        logger.error(message, extra=extra)


# Payment event functions

def log_webhook_event(
    logger: logging.Logger,
    provider: str,
    event_id: Optional[str],
    event_type: Optional[str],
    outcome: str,
    payment_id: Optional[str] = None,
    user_id: Optional[str] = None,
    **kwargs
):
    """
    Log a payment webhook delivery and what was done with it.

    Args:
        logger: Logger instance
        provider: Provider tag (snippe, stripe)
        event_id: Provider event ID
        event_type: Provider event type
        outcome: processed, already_processed, ignored or rejected
        payment_id: Optional payment ID
        user_id: Optional user ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="webhook_event",
        payment_id=payment_id,
        user_id=user_id,
        provider=provider,
        webhook_event_id=event_id,
        webhook_event_type=event_type,
        outcome=outcome,
        **kwargs
    )

    logger.info(f"Webhook {provider}:{event_type} {event_id} {outcome}", extra=extra)


# Convenience alias for backward compatibility
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
