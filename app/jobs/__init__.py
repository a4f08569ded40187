"""
Jobs package - periodic background work
"""
from jobs.scheduler import JobScheduler

__all__ = ['JobScheduler']
