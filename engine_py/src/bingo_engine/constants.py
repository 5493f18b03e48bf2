"""Game constants"""

CARD_SIZE = 25
NAME_SUFFIX_SEPARATOR = '#'
FIRST_SUFFIX = 2

INVALID_NAME_REASON = "Invalid name"
BINGO_ALERT_TEMPLATE = "{name} says BINGO!"
