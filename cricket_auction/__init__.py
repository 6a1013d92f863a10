"""
Cricket player auction engine.

Runs live player auctions for a league: teams bid for players from
configurable pools, sales commit atomically against team budgets, and
results are exposed through an HTTP API, CSV exports and a viewer feed.
"""
