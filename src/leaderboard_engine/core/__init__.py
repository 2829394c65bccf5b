"""
Core infrastructure: configuration, logging, exceptions, store contract and
the Redis backend. Contains no leaderboard logic.
"""
