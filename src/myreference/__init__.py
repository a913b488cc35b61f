"""MyReference: bookkeeping API for reference records.

Users register, activate their account with an emailed token, exchange
credentials for a bearer token, and then read or edit reference records
(a name plus the place the item is stored) according to the permission
codes granted to them.
"""

__version__ = "1.0.1"
