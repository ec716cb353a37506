"""
Collision Injury Risk Backend — FastAPI + hashed logistic regression
Modular entry point. All logic is split across:
  config.py, models.py, hashing.py, ml_model.py, chains.py, factors.py,
  records.py, session.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

from routes import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
