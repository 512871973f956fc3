# agency/constants.py

# Tour package classification
TOUR_CATEGORIES = [
    ("Domestic", "🇮🇳 Domestic"),
    ("International", "🌍 International"),
]

TOUR_PACKAGE_TYPES = [
    ("general", "General"),
    ("honeymoon", "💑 Honeymoon"),
    ("family", "👨‍👩‍👧 Family"),
    ("group", "🚌 Group"),
    ("adventure", "🧗 Adventure"),
    ("pilgrimage", "🛕 Pilgrimage"),
]

MEAL_PLANS = [
    ("EP", "EP (No Meals)"),
    ("CP", "CP (Breakfast Only)"),
    ("MAP", "MAP (Breakfast + Dinner)"),
    ("AP", "AP (All Meals)"),
]

# Inquiry pipeline
INQUIRY_STATUSES = [
    ("PENDING", "📝 Pending"),
    ("HOT_QUERY", "🔥 Hot Query"),
    ("QUERY_SENT", "📤 Query Sent"),
    ("CONFIRMED", "✅ Confirmed"),
    ("CANCELLED", "🚫 Cancelled"),
]

# Seasonal pricing
PEAK_SEASON = "PEAK_SEASON"
SHOULDER_SEASON = "SHOULDER_SEASON"
OFF_SEASON = "OFF_SEASON"

SEASON_TYPES = [
    (PEAK_SEASON, "🔴 Peak Season"),
    (SHOULDER_SEASON, "🟡 Shoulder Season"),
    (OFF_SEASON, "🔵 Off Season"),
]

# Sales / purchases
INVOICE_STATUSES = [
    ("pending", "Pending"),
    ("partial", "Partially Settled"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank Transfer"),
    ("upi", "UPI"),
    ("card", "Card"),
    ("cheque", "Cheque"),
]

# WhatsApp campaigns
CAMPAIGN_STATUSES = [
    ("draft", "📝 Draft"),
    ("scheduled", "🕒 Scheduled"),
    ("sending", "📤 Sending"),
    ("completed", "✅ Completed"),
    ("cancelled", "🚫 Cancelled"),
    ("failed", "❌ Failed"),
]

RECIPIENT_STATUSES = [
    ("pending", "Pending"),
    ("sending", "Sending"),
    ("sent", "Sent"),
    ("failed", "Failed"),
    ("retry", "Retry"),
    ("opted_out", "Opted Out"),
]

MESSAGE_DIRECTIONS = [
    ("outbound", "Outbound"),
    ("inbound", "Inbound"),
]

# Provider error codes that must not be retried
NO_RETRY_ERROR_CODES = ("131049", "131050", "100", "131047")
OPTED_OUT_ERROR_CODE = "131050"
MAX_SEND_RETRIES = 3
