"""Internal constants shared across the library."""

BASE_URL = "https://geoserver.semob.df.gov.br/geoserver/semob/ows"
USER_AGENT = "pysemob/1 (+aiohttp)"

BUSES_TYPE_NAME = "semob:Última posição da frota"
STOPS_TYPE_NAME = "semob:Paradas de onibus"
LINES_TYPE_NAME = "semob:Linhas de onibus"
FLEET_TYPE_NAME = "semob:Frota por operadora"

GEOGRAPHIC_CRS = "EPSG:4326"

MAX_RESPONSE_BYTES = 5 * 1024 * 1024

# Status markers used in failed fetch results.
STATUS_NETWORK_ERROR = 0
STATUS_BAD_REQUEST = 400
STATUS_FORBIDDEN = 403
STATUS_TIMEOUT = 408
STATUS_TOO_LARGE = 413

# Diagnostic bodies of failed fetch results.
TIMEOUT_TEXT = "Request timeout after retries"
TOO_LARGE_TEXT = "Response too large, try with smaller dataset"
INVALID_URL_TEXT = "Invalid request URL"
FORBIDDEN_TEXT = "Host not allowed"

# maxFeatures caps added to proxied surface requests that carry none.
PROXY_MAX_FEATURES_BUSES = 300
PROXY_MAX_FEATURES_STOPS = 150
PROXY_MAX_FEATURES_DEFAULT = 50

DEFAULT_STOP_NAME = "Parada de ônibus"

# Main operators: match token, short name, marker colour.
MAIN_OPERATORS: tuple[tuple[str, str, str], ...] = (
    ("URBI", "URBI", "#2b97bbff"),
    ("PIONEIRA", "PIONEIRA", "#ffff00"),
    ("PIRACICABANA", "PIRACICABANA", "#006400"),
    ("MARECHAL", "MARECHAL", "#fb6900f0"),
    ("SÃO JOSÉ", "SÃO JOSÉ", "#938326"),
    ("UNIÃO TRANSPORTE BRASÍLIA", "UNIÃO TRANSPORTE BRASÍLIA", "cyan"),
)

# Upstream placeholders meaning "no value".
SENTINEL_STRINGS: frozenset[str] = frozenset({"", "--", "NULL", "N/A", "NAN"})
