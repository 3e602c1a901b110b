"""FreshLeap: backend e-commerce « de la ferme à la table » (FastAPI + SQLAlchemy + Stripe)."""

__version__ = "0.1.0"
