# case_activity_service/app/__init__.py
import logging

logger = logging.getLogger(__name__)
logger.info("Case Activity App Initialized")
