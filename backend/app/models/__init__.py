"""
Data models for the MatchDay API.

This module contains Pydantic models defining the documents the match engine
stores (matches, players, teams, trophies) and the request/response shapes of
the API.
"""
