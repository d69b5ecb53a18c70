"""Core logic for indicators, signal fusion and the prediction ledger.

This package contains pure business logic with no I/O dependencies
(no network access). It is shared between the live service (app/) and
the offline replay script.
"""
