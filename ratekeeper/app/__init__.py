"""ratekeeper application package."""
