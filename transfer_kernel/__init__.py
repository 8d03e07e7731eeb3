"""
Transfer Kernel

Balance transfers between accounts under serializable isolation, with:
- Bounded retry on deadlock and serialization conflicts
- Rollback on every failure path
- Decimal money, never float
- Structured, typed errors and JSON logging
"""

__version__ = "0.1.0"
