"""
Registre central des routers (API v1, health).
- API v1: auth, products, reviews, cart, checkout, orders, farmers
- Health: health_router
"""
from fastapi import FastAPI
from freshleap.auth.views import api_router as auth_api_router
from freshleap.products import views as products_views
from freshleap.reviews import views as reviews_views
from freshleap.cart import views as cart_views
from freshleap.checkout import views as checkout_views
from freshleap.orders import views as orders_views
from freshleap.farmers import views as farmers_views
from freshleap.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    # API v1
    app.include_router(auth_api_router)
    app.include_router(products_views.router)
    app.include_router(reviews_views.router)
    app.include_router(cart_views.router)
    app.include_router(checkout_views.router)
    app.include_router(orders_views.router)
    app.include_router(farmers_views.router)
    # Health & monitoring
    app.include_router(health_router)
