import time
import uuid
import logging
from functools import wraps
from typing import Optional

from prometheus_client import Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

from fleetflow.services.exceptions import FleetError

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

ledger_operations_total = Counter(
    'fleet_ledger_operations_total',
    'Total store/ledger/stats operations',
    ['status', 'service', 'method'],
    registry=REGISTRY
)

ledger_operation_duration_seconds = Histogram(
    'fleet_ledger_operation_duration_seconds',
    'Operation duration in seconds',
    ['service', 'method'],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY
)

ledger_rejections_total = Counter(
    'fleet_ledger_rejections_total',
    'Operations rejected by a domain precondition',
    ['code'],
    registry=REGISTRY
)

system_info = Info(
    'fleetflow_info',
    'System information',
    registry=REGISTRY
)
system_info.info({'service': 'fleetflow-ledger', 'version': '1.0.0'})


def _outcome(exc: Optional[BaseException]) -> str:
    if exc is None:
        return 'success'
    if isinstance(exc, FleetError) and exc.status_code < 500:
        return 'rejected'
    return 'error'


def track_performance(service_name: Optional[str] = None):
    """
    Decorator to automatically track method performance

    Usage:
    @track_performance(service_name="FleetLedger")
    async def dispatch(self, ...):
        # method implementation
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            correlation_id = str(uuid.uuid4())
            actual_service_name = service_name or (args[0].__class__.__name__ if args else "Unknown")
            method_name = func.__name__

            start_time = time.perf_counter()
            failure: Optional[BaseException] = None

            try:
                return await func(*args, **kwargs)

            except Exception as e:
                failure = e
                if isinstance(e, FleetError) and e.status_code < 500:
                    ledger_rejections_total.labels(code=e.code).inc()
                else:
                    logger.error(f"Error in {actual_service_name}.{method_name}: {e}")
                raise

            finally:
                duration_seconds = time.perf_counter() - start_time
                status = _outcome(failure)

                ledger_operations_total.labels(
                    status=status,
                    service=actual_service_name,
                    method=method_name
                ).inc()
                ledger_operation_duration_seconds.labels(
                    service=actual_service_name,
                    method=method_name
                ).observe(duration_seconds)

                logger.info(
                    f"Method executed: {actual_service_name}.{method_name}",
                    extra={
                        'correlation_id': correlation_id,
                        'service_name': actual_service_name,
                        'method_name': method_name,
                        'duration_ms': round(duration_seconds * 1000, 3),
                        'status': status,
                    }
                )

        return wrapper
    return decorator


def get_prometheus_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    return generate_latest(REGISTRY)
