"""
Envelope Kernel

Core of a zero-based ("envelope") budgeting engine:
- Integer-cent money and calendar budget periods
- Recurring category targets
- Accounts, categories and transactions with split and transfer rules
- SQLAlchemy storage and record services
"""

__version__ = "0.1.0"
