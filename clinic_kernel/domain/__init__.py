"""Pure domain helpers for the clinic kernel."""

from clinic_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "SystemClock", "DeterministicClock"]
