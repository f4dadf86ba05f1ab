"""
Users Django app.

Identity itself (login, tokens) is resolved upstream; this app only holds the
users relation orders point at, the closed role enumeration, and the
capability table that gates every operation.
"""
