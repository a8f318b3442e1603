"""Services package for RSI Digest."""
from rsi_digest.services.digest import DigestService
from rsi_digest.services.scheduler import DigestScheduler, log_sink

__all__ = ['DigestService', 'DigestScheduler', 'log_sink']
