"""HTTP insight service (FastAPI) implementing the annotation oracle."""
