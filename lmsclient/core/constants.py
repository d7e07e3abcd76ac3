"""Core constants: cache key prefixes, proxy endpoints, and wire literals.

Single source of truth for cache key structure and the proxy API surface
(DRY). Used by the cache key builders and LmsDataService.
"""

# Cache key prefixes (resource classes)
CACHE_PREFIX_USER = "user_self"
CACHE_PREFIX_COURSES = "courses"
CACHE_PREFIX_COURSE = "course"
CACHE_PREFIX_ASSIGNMENTS = "assignments"
CACHE_PREFIX_ASSIGNMENT = "assignment"
CACHE_PREFIX_ALL_ASSIGNMENTS = "all_assignments"
CACHE_PREFIX_UPCOMING_ASSIGNMENTS = "upcoming_assignments"
CACHE_PREFIX_CALENDAR_EVENTS = "calendar_events"
CACHE_PREFIX_MODULES = "modules"
CACHE_PREFIX_SEARCH_COURSES = "search_courses"

# Delimiters for composite keys: prefix_k1=v1&k2=v2
CACHE_KEY_SEP = "_"
CACHE_PARAM_SEP = "&"

# Characters kept verbatim when a key becomes a filename; all others become "_"
CACHE_FILENAME_PATTERN = r"[^A-Za-z0-9_.\-]"
CACHE_FILENAME_REPLACEMENT = "_"
CACHE_FILE_SUFFIX = ".json"
# Longer stems are cut and suffixed with a key hash to stay under NAME_MAX (255)
CACHE_FILENAME_MAX_STEM = 200
CACHE_FILENAME_HASH_LENGTH = 16

# Proxy API endpoints (relative to proxy_base_url)
ENDPOINT_HEALTH = "/auth/health"
ENDPOINT_USER_SELF = "/users/self"
ENDPOINT_COURSES = "/courses"
ENDPOINT_CALENDAR_EVENTS = "/calendar_events"

# HTTP
AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer"
RETRY_AFTER_HEADER = "Retry-After"
HTTP_TOO_MANY_REQUESTS = 429
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403

# Response envelope keys
ENVELOPE_SUCCESS = "success"
ENVELOPE_DATA = "data"
ENVELOPE_ERROR = "error"
