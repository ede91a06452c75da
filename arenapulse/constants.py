# Collection names
USERS_COLLECTION = "users"
TOURNAMENTS_COLLECTION = "tournaments"
GROUPS_COLLECTION = "groups"
ROOMS_COLLECTION = "rooms"
PAYMENTS_COLLECTION = "payments"
BOOKINGS_COLLECTION = "bookings"

# Tournament defaults
DEFAULT_CAPACITY = 20000
DEFAULT_GROUP_SIZE = 16
MIN_TEAM_PLAYERS = 4
MAX_TEAM_PLAYERS = 5

# Firestore caps a write batch at 500 operations
FIRESTORE_BATCH_LIMIT = 450
