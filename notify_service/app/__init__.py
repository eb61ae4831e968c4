"""FastAPI application wiring: factory, lifespan, middleware, routers."""
