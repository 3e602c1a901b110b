# module freshleap.app
"""Instance unique de l'application, construite par la factory."""
from freshleap.app_setup.factory import create_app

app = create_app()
