# agency/catalog.py
"""Tour package classification (Domestic / International)."""

import logging
import re

logger = logging.getLogger(__name__)

DOMESTIC_KEYWORDS = [
    # States and union territories
    "andhra pradesh", "arunachal pradesh", "assam", "bihar", "chhattisgarh", "goa",
    "gujarat", "haryana", "himachal pradesh", "himachal", "jharkhand", "karnataka",
    "kerala", "madhya pradesh", "maharashtra", "manipur", "meghalaya", "mizoram",
    "nagaland", "odisha", "punjab", "rajasthan", "sikkim", "tamil nadu", "telangana",
    "tripura", "uttar pradesh", "uttarakhand", "west bengal", "andaman", "nicobar",
    "chandigarh", "daman", "diu", "delhi", "new delhi", "jammu", "kashmir", "ladakh",
    "lakshadweep", "puducherry", "pondicherry",
    # Cities
    "mumbai", "bangalore", "bengaluru", "hyderabad", "ahmedabad", "chennai", "kolkata",
    "pune", "jaipur", "surat", "lucknow", "nagpur", "indore", "bhopal", "visakhapatnam",
    "patna", "vadodara", "agra", "nashik", "varanasi", "srinagar", "aurangabad",
    "amritsar", "prayagraj", "ranchi", "coimbatore", "gwalior", "vijayawada", "jodhpur",
    "madurai", "raipur", "guwahati", "mysore", "mysuru", "bhubaneswar", "kochi", "cochin",
    "dehradun", "ajmer", "ujjain", "siliguri", "udaipur", "mangaluru", "mathura",
    "thrissur", "imphal", "agartala", "shillong", "tirupati", "trivandrum",
    "thiruvananthapuram",
    # Destinations
    "manali", "shimla", "darjeeling", "ooty", "kodaikanal", "munnar", "alleppey",
    "alappuzha", "kumarakom", "rishikesh", "haridwar", "pushkar", "jaisalmer", "bikaner",
    "ranthambore", "jim corbett", "corbett", "nainital", "mussoorie", "dharamshala",
    "mcleodganj", "kasol", "spiti", "leh", "nubra", "pangong", "port blair", "havelock",
    "neil island", "gokarna", "hampi", "coorg", "chikmagalur", "wayanad", "thekkady",
    "varkala", "kovalam", "mahabalipuram", "kanyakumari", "rameswaram", "thanjavur",
    "puri", "konark", "gangtok", "pelling", "lachung", "cherrapunji", "kaziranga",
    "mount abu", "dalhousie", "khajjiar", "kullu", "solang", "rohtang", "kargil",
    "sonamarg", "gulmarg", "pahalgam", "vaishno devi", "amarnath", "dal lake",
    # General
    "india", "indian", "bharat",
]

INTERNATIONAL_KEYWORDS = [
    # Countries
    "australia", "austria", "azerbaijan", "bahrain", "bangladesh", "belgium", "bhutan",
    "brazil", "cambodia", "canada", "china", "croatia", "czech republic", "denmark",
    "egypt", "fiji", "finland", "france", "georgia", "germany", "greece", "hungary",
    "iceland", "indonesia", "ireland", "israel", "italy", "japan", "jordan", "kazakhstan",
    "kenya", "south korea", "korea", "laos", "malaysia", "maldives", "mauritius", "mexico",
    "morocco", "myanmar", "nepal", "netherlands", "new zealand", "norway", "oman",
    "philippines", "poland", "portugal", "qatar", "russia", "saudi arabia", "seychelles",
    "singapore", "south africa", "spain", "sri lanka", "sweden", "switzerland", "taiwan",
    "tanzania", "thailand", "turkey", "united arab emirates", "uae", "emirates",
    "united kingdom", "uk", "england", "scotland", "united states", "usa", "america",
    "uzbekistan", "vietnam",
    # Cities and destinations
    "dubai", "abu dhabi", "sharjah", "doha", "muscat", "bangkok", "phuket", "pattaya",
    "chiang mai", "krabi", "koh samui", "kuala lumpur", "penang", "langkawi", "sentosa",
    "bali", "ubud", "jakarta", "lombok", "manila", "cebu", "boracay", "hong kong", "macau",
    "beijing", "shanghai", "tokyo", "osaka", "kyoto", "seoul", "busan", "jeju", "taipei",
    "hanoi", "ho chi minh", "saigon", "da nang", "hoi an", "halong bay", "siem reap",
    "angkor wat", "phnom penh", "colombo", "kandy", "galle", "bentota", "kathmandu",
    "pokhara", "thimphu", "paro", "punakha", "istanbul", "cappadocia", "antalya", "cairo",
    "luxor", "marrakech", "paris", "london", "rome", "venice", "amsterdam", "zurich",
    "lucerne", "interlaken", "vienna", "prague", "barcelona", "madrid", "new york",
    "las vegas", "sydney", "melbourne", "auckland", "baku", "almaty", "tashkent",
]

_PATTERNS = {}


def _pattern(keyword):
    if keyword not in _PATTERNS:
        _PATTERNS[keyword] = re.compile(r"\b" + re.escape(keyword) + r"\b")
    return _PATTERNS[keyword]


def keyword_hits(text, keywords):
    text = (text or "").lower()
    return [kw for kw in keywords if _pattern(kw).search(text)]


def categorize_text(location_label, package_name):
    """
    Decide Domestic / International from a location label and package name.

    Only domestic hits -> Domestic, only international -> International.
    Mixed hits are settled by the location label alone, then by hit count
    (ties go International). No hits at all default to Domestic.
    """
    location_label = (location_label or "").lower()
    text = f"{location_label} {(package_name or '').lower()}"

    domestic = keyword_hits(text, DOMESTIC_KEYWORDS)
    international = keyword_hits(text, INTERNATIONAL_KEYWORDS)

    if domestic and not international:
        return "Domestic"
    if international and not domestic:
        return "International"
    if domestic and international:
        location_domestic = bool(keyword_hits(location_label, DOMESTIC_KEYWORDS))
        location_international = bool(
            keyword_hits(location_label, INTERNATIONAL_KEYWORDS)
        )
        if location_domestic and not location_international:
            return "Domestic"
        if location_international and not location_domestic:
            return "International"
        if len(domestic) > len(international):
            return "Domestic"
        return "International"
    return "Domestic"


def categorize_tour_package(package):
    label = package.location.label if package.location_id else ""
    return categorize_text(label, package.name)


def recategorize_packages(packages, dry_run=False):
    """
    Applies ``categorize_tour_package`` to every package whose stored
    category differs. Returns a list of ``(package, old, new)`` changes.
    """
    changes = []
    for package in packages:
        suggested = categorize_tour_package(package)
        if package.tour_category == suggested:
            continue
        previous = package.tour_category
        changes.append((package, previous, suggested))
        if not dry_run:
            package.tour_category = suggested
            package.save(update_fields=["tour_category", "updated_at"])
        logger.info(
            "%s %s: %s -> %s",
            "Would update" if dry_run else "Updated",
            package,
            previous,
            suggested,
        )
    return changes
