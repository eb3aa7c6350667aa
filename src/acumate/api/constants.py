"""Backend routes and persistent cache keys."""

GRAPH_API_ROUTE = "ui/graph"
GRAPH_API_STRUCTURE_ROUTE = "ui/graph/"
FEATURES_ROUTE = "ui/features"
AUTH_ENDPOINT = "entity/auth/login"
LOGOUT_ENDPOINT = "entity/auth/logout"

GRAPH_API_CACHE = "GraphAPICache"
GRAPH_API_STRUCTURE_CACHE_PREFIX = "GraphAPIStructureCache"
FEATURES_CACHE = "FeaturesCache"
