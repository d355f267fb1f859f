"""Centralized timeout configuration for local service lifecycle operations.

All lifecycle-related timeout values are defined here to:
1. Provide a single source of truth for tuning
2. Document the purpose of each timeout value
3. Enable easy adjustment for different environments (e.g., slower systems)
"""


class LifecycleTimeouts:
    """Centralized timeout configuration for lifecycle operations.

    All values are in seconds unless otherwise noted.

    Groups:
        EXTERNAL_*: Waiting for an externally managed service to come up
        READY_*: Waiting for a service we launched ourselves to come up
        HTTP_*: Readiness probe and binding request timeouts
        SIGTERM_*: Graceful shutdown timeouts
        SIGKILL_*: Force kill timeouts
    """

    # =========================================================================
    # Externally Managed Start
    # =========================================================================

    EXTERNAL_START_WAIT: float = 180.0
    """Total time to wait for an externally managed service to answer.

    Used when hearth does not control the service process (for example, a
    container orchestrator starts it). Container pulls and first-time
    initialization can take minutes, so this is deliberately generous. The
    operator is warned once half of this budget is used up.
    """

    EXTERNAL_START_INTERVAL: float = 2.0
    """Interval between readiness probes for an externally managed service.

    Each probe is a full HTTP request, so polling faster than this mostly
    produces connection-refused noise in the service logs.
    """

    # =========================================================================
    # Launched Service Ready Wait
    # =========================================================================

    READY_WAIT: float = 30.0
    """Time to wait for a service we spawned to publish its address and answer."""

    READY_CHECK_INTERVAL: float = 0.5
    """Interval between readiness checks after spawning the service.

    Lower values detect readiness faster but consume more CPU.
    """

    INSTANT_FAILURE_WAIT: float = 0.1
    """Brief wait after spawn before checking whether the process died at once."""

    # =========================================================================
    # HTTP Requests
    # =========================================================================

    HTTP_REQUEST: float = 2.0
    """Timeout for a single readiness probe or environment request.

    Kept short: a probe that hangs costs a whole polling interval, and the
    poller never overlaps probes.
    """

    # =========================================================================
    # Graceful Shutdown (SIGTERM) Timeouts
    # =========================================================================

    SIGTERM_WAIT: float = 10.0
    """Time to wait for graceful shutdown after SIGTERM.

    If the service doesn't stop within this time, SIGKILL is sent.
    """

    # =========================================================================
    # Force Kill (SIGKILL) Timeouts
    # =========================================================================

    SIGKILL_WAIT: float = 2.5
    """Time to wait after sending SIGKILL.

    SIGKILL cannot be caught or ignored, so this is primarily to allow the OS
    to clean up the process.
    """

    DEATH_CHECK_INTERVAL: float = 0.5
    """Interval between checks when waiting for process death."""
