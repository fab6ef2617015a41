"""Clients for the Fitbit Web API."""

from .fitbit_client import FitbitFoodLogClient, FitbitOAuthClient

__all__ = ["FitbitFoodLogClient", "FitbitOAuthClient"]
