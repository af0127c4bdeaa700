"""
services/ - Business Logic Layer
================================
The billing scheduler (pure date arithmetic), payment history overlay,
late fees, exports, and the RecurringService that ties them to the
repositories.
"""
