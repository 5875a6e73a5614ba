"""
US Jurisdictions
================

State names and postal codes, used to compare rule locations with the
business headquarters regardless of how either was written.

Version: 0.1.0
"""

US_STATES: dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "DC": "District of Columbia",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
}

_NAME_TO_CODE = {name.casefold(): code for code, name in US_STATES.items()}


def state_code(value: str | None) -> str | None:
    """
    Resolve a state name or postal code to its postal code.

    Returns None for anything that is not a US state (or DC).
    """
    if not value or not isinstance(value, str):
        return None
    cleaned = " ".join(value.split())
    if cleaned.upper() in US_STATES:
        return cleaned.upper()
    return _NAME_TO_CODE.get(cleaned.casefold())


def state_name(value: str | None) -> str | None:
    code = state_code(value)
    return US_STATES[code] if code else None


def same_state(left: str | None, right: str | None) -> bool:
    """
    True when both values denote the same state.

    Values that are not recognized states fall back to a case-insensitive
    comparison, so free-form jurisdictions still match themselves.
    """
    if not left or not right or not isinstance(left, str) or not isinstance(right, str):
        return False
    left_code, right_code = state_code(left), state_code(right)
    if left_code and right_code:
        return left_code == right_code
    return " ".join(left.split()).casefold() == " ".join(right.split()).casefold()
