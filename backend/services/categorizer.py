# backend/services/categorizer.py
"""
Keyword-overlap categorizer for bid request details.

Each category name is expanded once, at import time, into its distinct
lowercase alphanumeric words of three or more characters. A request is scored
against every category by counting how many of those words appear anywhere in
the lower-cased text; the first category to reach the highest score wins.
"""

import re

DEFAULT_CATEGORY = 'General'

SERVICE_CATEGORIES = [
    'Wedding Planning',
    'Birthday Party Planning',
    'Baby Shower Planning',
    'Engagement Party Planning',
    'Bridal Shower Planning',
    'Anniversary Party Planning',
    'Corporate Event Planning',
    'Product Launch Events',
    'Gala Dinners',
    'Award Ceremonies',
    'Charity Fundraisers',
    'Graduation Parties',
    'Farewell Parties',
    'Housewarming Parties',
    'Holiday Parties',
    'Religious Ceremonies',
    'Festivals and Fairs',
    'Bachelor / Bachelorette Parties',
    'Sweet 16 / Quinceañera',
    'Retirement Parties',
    'Cultural Events',
    'Full-Service Catering',
    'Buffet Catering',
    'Cocktail Reception Catering',
    'Dessert Table Catering',
    'Live Food Stations',
    'Food Truck Catering',
    'Cake and Bakery Services',
    'Bartending Services',
    'Beverage Stations',
    'Live Bands',
    'DJs',
    'Stand-up Comedians',
    'Emcees / Hosts',
    'Magicians',
    'Dancers',
    'Fire Shows',
    'Kids’ Entertainment',
    'Celebrity Appearances',
    'Motivational Speakers',
    'Wedding Decor',
    'Themed Birthday Decor',
    'Stage Decoration',
    'Floral Arrangements',
    'Balloon Decoration',
    'Lighting and Effects',
    'Photo Booth Setup',
    'Table Settings and Centerpieces',
    'Backdrop Design',
    'Lounge Furniture Rentals',
    'Event Photography',
    'Wedding Films',
    'Live Streaming Services',
    'Drone Videography',
    'Instant Photo Printing',
    '360-Degree Photo Booths',
    'Event Rentals',
    'Sound and Lighting Equipment Rental',
    'Stage Setup and AV Management',
    'Transportation',
    'Security Services',
    'Valet Parking',
    'Cleaning Services',
    'Power Backup',
    'Permit and License Handling',
    'Makeup Artists',
    'Hair Stylists',
    'Mehndi / Henna Artists',
    'Styling Services',
    'Personal Shoppers',
    'Custom Invitation Cards',
    'Return Gifts',
    'Event Souvenirs',
    'Wedding Favors',
    'Digital Invitations',
]

# ASCII word boundaries: 'Quinceañera' splits into 'quince' and 'era'
_TOKEN_PATTERN = re.compile(r'\b[a-z0-9]{3,}\b', re.ASCII)


def category_tokens(category):
    """Distinct keyword tokens of a category name, in order of first appearance."""
    tokens = []
    for word in _TOKEN_PATTERN.findall(category.lower()):
        if word not in tokens:
            tokens.append(word)
    return tokens


CATEGORY_KEYWORDS = {category: category_tokens(category) for category in SERVICE_CATEGORIES}


def is_known_category(name):
    return name in CATEGORY_KEYWORDS or name == DEFAULT_CATEGORY


def classify(text):
    """Return the best-matching service category for free text, or 'General'."""
    if not isinstance(text, str) or not text:
        return DEFAULT_CATEGORY

    lower = text.lower()
    best, highest = DEFAULT_CATEGORY, 0
    for category in SERVICE_CATEGORIES:
        score = sum(1 for keyword in CATEGORY_KEYWORDS[category] if keyword in lower)
        if score > highest:
            best, highest = category, score
    return best
