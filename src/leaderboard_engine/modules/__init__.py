"""Leaderboard domain modules."""
