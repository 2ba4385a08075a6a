"""Forecast module - daily balance projection and safe-spending analysis."""
from cashflow.forecast import engine, schemas, routes

__all__ = ["engine", "schemas", "routes"]
