"""
Test suite for Ayurweda.

Integration tests drive the API through FastAPI's TestClient against a
throwaway SQLite database; a few unit tests cover pure helpers.
"""
import os

os.environ["TESTING"] = "1"
