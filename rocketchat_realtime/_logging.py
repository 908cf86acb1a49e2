import logging

logger = logging.getLogger("rocketchat_realtime")
