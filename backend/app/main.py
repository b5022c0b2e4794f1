from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.exceptions import register_exception_handlers
from app.startup import configure_startup_logging, run_startup_checks

# ========== POS Import ==========
from modules.pos_import.exceptions.pos_import_exceptions import POSImportError
from modules.pos_import.routes.pos_import_routes import (
    handle_pos_import_error,
    router as pos_import_router,
)

configure_startup_logging()

app = FastAPI(
    title="Restaurant Back Office - POS Import API",
    description="""
    Imports catalogue, customer, sales and floor data from the POS cloud
    into the back office store, scoped per restaurant.

    ## Features

    * **POS Sync** - categories, products, customers, stock, sales, receipts, rooms and tables
    * **Receipts** - date ranges imported in fixed-size day windows
    * **Dish Sales** - per-dish quantity and revenue over imported receipts
    """,
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.add_exception_handler(POSImportError, handle_pos_import_error)

app.include_router(pos_import_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Validate configuration on application startup"""
    run_startup_checks()


@app.get("/health")
def health_check():
    return {"status": "ok"}
