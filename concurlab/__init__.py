"""Hands-on experiments with threads, processes, semaphores and shared buffers."""

__version__ = "0.1.0"