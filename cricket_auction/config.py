"""
Configuration constants for the cricket player auction engine.

All prices and budgets are integer lakhs (1 crore = 100 lakhs).
"""

import os

# Player Settings
PLAYER_ROLES = ['Batsman', 'Bowler', 'All-rounder', 'Wicket-keeper']
DEFAULT_PLAYER_ROLE = 'Batsman'
DEFAULT_COUNTRY = 'India'

MIN_BASE_PRICE = 5       # ₹5 Lakhs
MAX_BASE_PRICE = 2000    # ₹20 Crores
DEFAULT_BASE_PRICE = 20

# Team Settings
DEFAULT_TEAM_BUDGET = 8000   # ₹80 Crores
MIN_TEAM_BUDGET = 5000       # ₹50 Crores
MAX_TEAM_BUDGET = 15000      # ₹150 Crores
DEFAULT_TEAM_COLOR = '#1E40AF'

# Bidding
# Increment menu offered to the auctioneer; the engine itself only checks
# that each bid is higher than the last one and affordable.
BID_INCREMENTS = [5, 10, 25, 50]

# Pools
POOL_STATUSES = ['Ready', 'Hidden', 'Active', 'Locked', 'Completed']
POOL_VISIBILITIES = ['Public', 'Private']

# ===== IMPORT CONFIGURATION =====

# Column aliases accepted by the roster importer (lowercased header -> field)
COLUMN_ALIASES = {
    'name': ['name', 'player', 'player name', 'full name', 'fullname'],
    'role': ['role', 'playing role', 'position', 'speciality', 'type'],
    'country': ['country', 'nation', 'nationality'],
    'base_price': ['base_price', 'baseprice', 'base price', 'base price (cr)',
                   'base price (l)', 'price', 'starting bid', 'base'],
    'age': ['age'],
    'evaluation_points': ['evaluation_points', 'points', 'evaluation points',
                          'rating', 'score'],
    'pool': ['pool', 'pool name', 'group'],
    'bio': ['bio', 'description', 'notes'],
    'performance_stats': ['performance_stats', 'stats', 'performance stats'],
}

# fuzzywuzzy score (0-100) at which two imported names are flagged as duplicates
DUPLICATE_NAME_THRESHOLD = 92

# ===== STORAGE CONFIGURATION =====

AUCTION_DATA_DIR = os.getenv('AUCTION_DATA_DIR', 'data/auction')
CHECKPOINT_FILENAME = 'auction_state.json'
AUCTION_LOG_FILENAME = 'auction_log.jsonl'
EXPORT_DIR = 'data/exports'

# Logging
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# ===== API SERVER CONFIGURATION =====

API_HOST = '127.0.0.1'
API_PORT = 8000

# Number of log entries shown on the viewer feed
LIVE_FEED_HISTORY_LIMIT = 10

# ===== FRONTEND CONFIGURATION =====

# Polling interval suggested to viewer dashboards (seconds)
FRONTEND_AUTO_REFRESH_INTERVAL = 3
