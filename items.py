"""
Project: Food Truck Kiosk

Description:
Helpers for the flattened item strings stored on an order. A line of three
"Panipuri" with options "Mild" and "Extra Sev" is stored as three copies of
"Panipuri (Mild, Extra Sev)"; quantity is the number of repeats.
"""

import re
from collections import OrderedDict

_PRICE_SUFFIX = re.compile(r"\s*\(\+\$\d+(\.\d+)?\)\s*$")


def format_item(name, options=None):
    options = [o for o in (options or []) if o]
    if options:
        return f"{name} ({', '.join(options)})"
    return name


def parse_item(item):
    """Split an item string into (name, options) on the first " (".

    >>> parse_item("Panipuri (Mild, Extra Sev (+$1))")
    ('Panipuri', ['Mild', 'Extra Sev (+$1)'])
    """
    name, sep, rest = item.partition(" (")
    if not sep:
        return item.strip(), []
    if rest.endswith(")"):
        rest = rest[:-1]
    return name.strip(), [o.strip() for o in rest.split(", ") if o.strip()]


def strip_price_suffix(option):
    """'Extra Sev (+$1.50)' -> 'Extra Sev'"""
    return _PRICE_SUFFIX.sub("", option)


def expand_items(lines):
    """Flatten (name, options, quantity) lines into one string per unit."""
    out = []
    for name, options, quantity in lines:
        out.extend([format_item(name, options)] * int(quantity))
    return out


def group_items(items):
    """Count identical item strings, keeping first-seen order."""
    counts = OrderedDict()
    for item in items:
        counts[item] = counts.get(item, 0) + 1
    return counts
