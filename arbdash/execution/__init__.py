# Simulated execution
from .simulator import ExecutionSimulator

__all__ = ["ExecutionSimulator"]
