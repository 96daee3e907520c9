"""Configuration constants for the Consum store locator

Consum publishes its supermarkets through Drupal map endpoints. Provincial
listing feeds (get-map-list) return GeoJSON-like payloads with every store
of every banner; the per-store endpoint (get-map/{id}) returns the same
shape for a single store. Charter-banner stores are recognised by their
map icon or by the word "Charter" in their name/description.

Discovery method: provincial listing feeds with page/p pagination
Data source: consum.es/get-map-list, consum.es/get-map/{id}
"""

import os
import random

# Base URLs
BASE_URL = os.getenv("CONSUM_BASE_URL", "https://www.consum.es").rstrip("/")

# Provincial listing feeds (Spanish and Valencian paths)
FEEDS = [
    f"{BASE_URL}/get-map-list/block_supermercados_en_barcelona/",
    f"{BASE_URL}/va/get-map-list/block_supermercados_en_valencia/",
    f"{BASE_URL}/va/get-map-list/block_supermercados_en_alicante/",
    f"{BASE_URL}/get-map-list/block_supermercados_en_castellon/",
    f"{BASE_URL}/get-map-list/block_supermercados_en_murcia/",
    f"{BASE_URL}/get-map-list/block_supermercados_en_albacete/",
]

# Per-store detail lookups, tried in order until one returns a feature
DETAIL_URL_TEMPLATES = [
    BASE_URL + "/get-map/{store_id}/",
    BASE_URL + "/va/get-map/{store_id}/",
]

# Feeds page in chunks of this size; a shorter page is the last one
PAGE_SIZE = 200

# Highest page number tried for each pagination parameter
MAX_PAGES = 20

# Query parameters the feeds have been seen to paginate on
PAGE_PARAMS = ("page", "p")

# Brand label written on every output feature
BRAND = "Charter"

# User agents for rotation
USER_AGENTS = [
    ("Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
     "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"),
    ("Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
     "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"),
]

def get_headers(user_agent=None):
    """Get headers dict with optional user agent rotation"""
    if user_agent is None:
        user_agent = random.choice(USER_AGENTS)

    return {
        "User-Agent": user_agent,
        "Accept": "*/*",
        "Accept-Language": "es-ES,es;q=0.9,ca;q=0.8",
        "Referer": f"{BASE_URL}/supermercados/",
    }
