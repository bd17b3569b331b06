"""Core analysis logic: indicators, models, and signal rules.

This package contains pure business logic with no I/O dependencies
(no network, cache, or configuration access). The application package
(coinpulse/) feeds it market data fetched through the request broker.
"""
