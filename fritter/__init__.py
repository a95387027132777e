"""
Fritter backend package.

A FastAPI application serving freets, upvotes and age-gated user profiles
over a pluggable document store (SQLAlchemy or in-memory).
"""
