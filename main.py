# Form to HighLevel Router - Main Application Entry Point

# Load environment variables FIRST (before any other imports that use config)
from dotenv import load_dotenv
load_dotenv()  # This loads the .env file

from fastapi import FastAPI
from contextlib import asynccontextmanager
from functools import partial
from typing import Optional
import logging

from config import AppConfig
from api.routes.webhook_routes import router as webhook_router
from api.routes.field_mapping_routes import router as field_mapping_router
from api.services.conversation_dispatcher import ConversationDispatcher
from api.services.custom_field_cache import CustomFieldCache
from api.services.form_submission_service import FormSubmissionService
from api.services.ghl_api import GoHighLevelAPI
from api.services.mapping_store import MappingStore
from api.services.payload_builder import PayloadBuilder
from database.simple_connection import SimpleDatabase

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if AppConfig.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def make_client(api_token: str, config=AppConfig) -> GoHighLevelAPI:
    return GoHighLevelAPI(
        private_token=api_token,
        location_id=config.GHL_LOCATION_ID,
        base_url=config.GHL_API_BASE_URL,
        timeout=config.GHL_REQUEST_TIMEOUT,
        schema_timeout=config.GHL_SCHEMA_TIMEOUT,
    )


def wire_components(app: FastAPI, db: SimpleDatabase, config=AppConfig):
    """Construct the services once and attach them to the app"""
    client_factory = partial(make_client, config=config)
    mapping_store = MappingStore(db)
    payload_builder = PayloadBuilder(mapping_store)
    dispatcher = ConversationDispatcher(client_factory, db=db)
    custom_field_cache = CustomFieldCache(
        lambda: client_factory(config.GHL_PRIVATE_TOKEN),
        ttl_seconds=config.CUSTOM_FIELDS_CACHE_TTL,
    )

    app.state.db = db
    app.state.basic_mapping = config.get_basic_field_mapping()
    app.state.mapping_store = mapping_store
    app.state.custom_field_cache = custom_field_cache
    app.state.submission_service = FormSubmissionService(
        payload_builder=payload_builder,
        dispatcher=dispatcher,
        client_factory=client_factory,
        db=db,
        api_token=config.GHL_PRIVATE_TOKEN,
        location_id=config.GHL_LOCATION_ID,
        default_source=config.DEFAULT_LEAD_SOURCE,
        basic_mapping=config.get_basic_field_mapping(),
    )


def create_app(db: Optional[SimpleDatabase] = None, config=AppConfig) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown events"""
        logger.info("🚀 Form to HighLevel Router starting up...")

        logger.info("🔧 Configuration Status:")
        logger.info(f"   📍 GHL_LOCATION_ID: {'✅ Loaded' if config.GHL_LOCATION_ID else '❌ Missing'}")
        logger.info(f"   🔑 GHL_PRIVATE_TOKEN: {'✅ Loaded' if config.GHL_PRIVATE_TOKEN else '❌ Missing'}")

        if config.validate_config():
            logger.info("✅ All required configuration loaded successfully")
        else:
            logger.error(f"❌ Missing required configuration: {', '.join(config.get_missing_fields())}")

        logger.info("🎯 Ready to process form submissions!")
        yield
        logger.info("🛑 Form to HighLevel Router shutting down...")

    app = FastAPI(
        title="Form to HighLevel Router",
        description="Per-form field mapping from website forms to HighLevel contacts",
        version="1.1.2",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    wire_components(app, db or SimpleDatabase(config.DATABASE_URL), config=config)

    app.include_router(webhook_router)
    app.include_router(field_mapping_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "form-to-highlevel-router"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=AppConfig.HOST, port=AppConfig.PORT, reload=AppConfig.DEBUG)
