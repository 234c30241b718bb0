"""Constants for the Netatmo MQTT bridge.

This module contains the constants used throughout the bridge,
including API endpoints, vendor error codes and configuration keys.
"""

DOMAIN = "netatmo_mqtt"

BASE_URL = "https://api.netatmo.com"
PATH_AUTH = "/oauth2/token"
PATH_STATIONS_DATA = "/api/getstationsdata"
PATH_HOMECOACHS_DATA = "/api/gethomecoachsdata"

HTTP_GET = "GET"
HTTP_POST = "POST"

GRANT_TYPE_REFRESH_TOKEN = "refresh_token"

# Vendor error code for an expired access token
ERROR_CODE_ACCESS_TOKEN_EXPIRED = 3

POLL_INTERVAL = 60
DEFAULT_REQUEST_TIMEOUT = 30.0

ENV_LOG_LEVEL = "NETATMO_LOGLVL"
DEFAULT_LOG_LEVEL = "info"

CONF_CLIENT_ID = "client_id"
CONF_CLIENT_SECRET = "client_secret"
CONF_GET_FAVORITES = "get_favorites"
CONF_TOKEN_FILE = "token_file"
CONF_REQUEST_TIMEOUT = "request_timeout"
CONF_LOG_LEVEL = "log_level"
CONF_MQTT = "mqtt"
CONF_HOST = "host"
CONF_PORT = "port"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_TOPIC_PREFIX = "topic_prefix"
CONF_QOS = "qos"
CONF_RETAIN = "retain"
CONF_MQTT_CLIENT_ID = "client_id"

DEFAULT_TOKEN_FILE = "token.json"
DEFAULT_MQTT_PORT = 1883
DEFAULT_TOPIC_PREFIX = "netatmo"

# Token file keys
TOKEN_ACCESS_TOKEN = "access_token"
TOKEN_REFRESH_TOKEN = "refresh_token"
TOKEN_EXPIRES_IN = "expires_in"
TOKEN_EXPIRES_TS = "expires_ts"
