"""HTTP front end for the classification demo (FastAPI)."""
