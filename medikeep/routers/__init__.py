"""
FastAPI routers grouped by resource (prescriptions, reminders, profile).

Each module exposes an APIRouter included by the application factory in
app.py. Routers resolve the Owner through the authorization gate and delegate
everything else to the services stored on ``app.state``.
"""
