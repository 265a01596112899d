"""Alert severity and hazard classification from free alert text.

Shared by the providers that carry alerts (NWS and Pirate Weather). Severity
comes from an explicit upstream value only when it is extreme or severe;
everything else is derived from keywords in the alert title.
"""
import hashlib
import logging
import re
from typing import Any, Dict, Optional, Set, Union

from taxonomy import AlertSeverity, Hazard
from weather_data import Alert

EXTREME_KEYWORDS = (
    "tornado warning",
    "flash flood emergency",
    "tsunami warning",
    "extreme wind warning",
    "particularly dangerous situation",
)

SEVERE_KEYWORDS = (
    "severe thunderstorm warning",
    "tornado watch",
    "flash flood warning",
    "hurricane warning",
    "blizzard warning",
    "ice storm warning",
    "winter storm warning",
    "storm surge warning",
    "hurricane watch",
    "avalanche warning",
    "fire warning",
    "red flag warning",
    "excessive heat warning",
)

MODERATE_KEYWORDS = (
    "flood warning",
    "thunderstorm watch",
    "winter storm watch",
    "winter weather advisory",
    "wind advisory",
    "heat advisory",
    "freeze warning",
    "dense fog advisory",
    "flood advisory",
    "rip current statement",
    "frost advisory",
    "small craft advisory",
)

MINOR_KEYWORDS = (
    "special weather statement",
    "hazardous weather outlook",
    "air quality alert",
    "hydrologic outlook",
    "beach hazards statement",
    "urban and small stream",
    "lake wind advisory",
    "short term forecast",
)

# Place-name indicators; a hazard word near one of these is probably a street or creek name
PLACE_NAME_PATTERNS = (
    re.compile(r"\b(road|rd\.?|street|st\.?|ave\.?|avenue|ln\.?|lane|blvd\.?|boulevard|dr\.?|drive|way|place|pl\.?|parkway|pkwy\.?|highway|hwy\.?)\b"),
    re.compile(r"\b(city|town|county|village|district|neighborhood|park|plaza|center|square|region|area|zone)\b"),
    re.compile(r"\b(creek|river|lake|pond|bay|mountain|hill|valley|canyon|ridge|peak|summit|basin)\b"),
)
PLACE_NAME_WINDOW = 50

HAZARD_PATTERNS = (
    (re.compile(r"\btornado\b"), Hazard.TORNADO),
    (re.compile(r"\bhail\b"), Hazard.HAIL),
    (re.compile(r"\bflash flood\b|\bflooding\b|\bflood\b"), Hazard.FLOOD),
    (re.compile(r"\bthunder\b|\blightning\b|\bthunderstorms?\b"), Hazard.THUNDERSTORM),
    (re.compile(
        r"\b(?:winter storm|winter weather|heavy snow|snowfall|snow accumulation|snow and ice|"
        r"snow advisory|snow warning|snow emergency|snowstorm|snow covered|snow level)\b"
    ), Hazard.SNOW),
    (re.compile(r"\bfreez(?:e|ing)\b|\bice\b|\bsleet\b"), Hazard.ICE),
    (re.compile(r"\bwind\b|\bgust\b|\bstrong winds\b"), Hazard.WIND),
    (re.compile(r"\bdust\b"), Hazard.DUST),
    (re.compile(r"\bsmoke\b"), Hazard.SMOKE),
    (re.compile(r"\bfog\b"), Hazard.FOG),
    (re.compile(r"\bheat\b"), Hazard.HEAT),
    (re.compile(r"\bcold\b|\bchill\b"), Hazard.COLD),
    (re.compile(r"\brain\b|\bshower\b"), Hazard.RAIN),
    (re.compile(
        r"\b(?:hurricane warning|hurricane watch|hurricane advisory|hurricane threat|approaching hurricane|"
        r"major hurricane|potential hurricane|category \d hurricane|hurricane force|tropical storm|"
        r"tropical cyclone|tropical depression)\b"
    ), Hazard.HURRICANE),
)

SNOW_CONTEXT = re.compile(
    r"snow.{0,30}(weather|forecast|warning|advisory|inches|feet|heavy|condition|expect|potential|"
    r"accumulation|amount|total|depth|fall|coverage)"
)
WINTER_CONTEXT = re.compile(r"winter.{0,20}(weather|storm|advisory|warning)")
HURRICANE_CONTEXT = re.compile(
    r"hurricane.{0,30}(warning|watch|advisory|category|mph|wind|storm|evacuat|weather|intensity|eye|"
    r"cyclone|damage|impact|approach|strength)"
)
KNOWN_PLACE_NAMES = ("snow creek rd",)

TITLE_PLACE_WORDS = (
    r"\b(?:city|town|county|village|district|road|rd\.?|street|st\.?|avenue|ave\.?|lane|ln\.?|drive|dr\.?|"
    r"way|blvd\.?|plaza|park|creek|river|lake|pond|bay|mountain|hill|valley|canyon|ridge)\b"
)

# Checked in order against the title alone; first match wins
PRIMARY_HAZARD_PATTERNS = (
    (re.compile(r"\btornado\b"), Hazard.TORNADO.value),
    (re.compile(r"\bhurricane warning\b|\bhurricane watch\b|\btropical storm\b|\bcategory \d hurricane\b"), Hazard.HURRICANE.value),
    (re.compile(r"\bflash flood\b"), Hazard.FLOOD.value),
    (re.compile(r"\bthunderstorm\b"), Hazard.THUNDERSTORM.value),
    (re.compile(r"\bflood\b"), Hazard.FLOOD.value),
    (re.compile(r"\b(?:winter storm|winter weather|heavy snow|snowfall|snowstorm)\b"), Hazard.SNOW.value),
)
PRIMARY_HAZARD_TAIL = (
    (re.compile(r"\bice\b|\bfreezing\b"), Hazard.ICE.value),
    (re.compile(r"\bwind\b"), Hazard.WIND.value),
    (re.compile(r"\bheat\b"), Hazard.HEAT.value),
    (re.compile(r"\bcold\b"), Hazard.COLD.value),
    (re.compile(r"\bfog\b"), Hazard.FOG.value),
    (re.compile(r"\bdust\b"), Hazard.DUST.value),
    (re.compile(r"\bsmoke\b"), Hazard.SMOKE.value),
    (re.compile(r"\brain\b"), Hazard.RAIN.value),
    (re.compile(r"\bweather statement\b"), "special-weather"),
)


def determine_severity(title: Optional[str], api_severity: Optional[str] = None) -> AlertSeverity:
    """
    Classify an alert's severity.

    An upstream severity is trusted only when it is "extreme" or "severe";
    lower upstream values are ignored in favour of the title keywords.

    Args:
        title: Alert title / event name
        api_severity: Severity field reported by the provider, if any

    Returns:
        AlertSeverity: Canonical severity tier
    """
    if api_severity:
        reported = api_severity.lower()
        if reported in (AlertSeverity.EXTREME.value, AlertSeverity.SEVERE.value):
            return AlertSeverity(reported)

    lower_title = (title or "").lower()

    if any(keyword in lower_title for keyword in EXTREME_KEYWORDS):
        return AlertSeverity.EXTREME
    if "hurricane warning" in lower_title and ("category 4" in lower_title or "category 5" in lower_title):
        return AlertSeverity.EXTREME
    if any(keyword in lower_title for keyword in SEVERE_KEYWORDS):
        return AlertSeverity.SEVERE
    if any(keyword in lower_title for keyword in MODERATE_KEYWORDS):
        return AlertSeverity.MODERATE
    if any(keyword in lower_title for keyword in MINOR_KEYWORDS):
        return AlertSeverity.MINOR

    if "warning" in lower_title:
        return AlertSeverity.SEVERE
    if "watch" in lower_title:
        return AlertSeverity.MODERATE
    if "advisory" in lower_title or "statement" in lower_title:
        return AlertSeverity.MINOR
    return AlertSeverity.MODERATE


def _is_likely_place_name(text: str, term: str, window: int = PLACE_NAME_WINDOW) -> bool:
    index = text.find(term)
    if index == -1:
        return False
    context = text[max(0, index - window):index + len(term) + window]
    return any(pattern.search(context) for pattern in PLACE_NAME_PATTERNS)


def identify_hazards(title: str, description: str = "", full_text: str = "") -> Set[Hazard]:
    """
    Extract every hazard mentioned anywhere in an alert.

    Bare "snow" and "hurricane" need nearby weather wording and must not sit
    next to a place-name word, so "Snow Creek Rd" does not flag snow.

    Args:
        title: Alert title
        description: Short description / headline
        full_text: Full alert body

    Returns:
        Set[Hazard]: Hazards found (possibly empty)
    """
    text = f"{title or ''} {description or ''} {full_text or ''}".lower()
    hazards = {hazard for pattern, hazard in HAZARD_PATTERNS if pattern.search(text)}

    if Hazard.SNOW not in hazards:
        if re.search(r"\bsnow\b", text):
            if any(name in text for name in KNOWN_PLACE_NAMES):
                logging.debug("Excluded known place name from snow hazards")
            elif SNOW_CONTEXT.search(text) and not _is_likely_place_name(text, "snow"):
                hazards.add(Hazard.SNOW)
        if re.search(r"\bblizzard\b", text) and not _is_likely_place_name(text, "blizzard"):
            hazards.add(Hazard.SNOW)
        if re.search(r"\bwinter\b", text) and WINTER_CONTEXT.search(text) and not _is_likely_place_name(text, "winter"):
            hazards.add(Hazard.SNOW)

    if Hazard.HURRICANE not in hazards and re.search(r"\bhurricane\b", text):
        if HURRICANE_CONTEXT.search(text) and not _is_likely_place_name(text, "hurricane"):
            hazards.add(Hazard.HURRICANE)

    return hazards


def _title_place_name(title: str, term: str) -> bool:
    return bool(
        re.search(term + r"\s+" + TITLE_PLACE_WORDS, title)
        or re.search(TITLE_PLACE_WORDS + r"\s+" + term, title)
    )


def primary_hazard(title: Optional[str]) -> str:
    """
    Pick the single most important hazard from the alert title.

    Falls back to the first word of the title, or the second word when the
    first is a bare "watch", "warning" or "advisory".
    """
    lower_title = (title or "").lower()

    for pattern, hazard in PRIMARY_HAZARD_PATTERNS:
        if pattern.search(lower_title):
            return hazard
    if re.search(r"\bsnow\b", lower_title) and "snow creek" not in lower_title and not _title_place_name(lower_title, "snow"):
        return Hazard.SNOW.value
    if re.search(r"\bblizzard\b", lower_title) and not _title_place_name(lower_title, "blizzard"):
        return Hazard.SNOW.value
    for pattern, hazard in PRIMARY_HAZARD_TAIL:
        if pattern.search(lower_title):
            return hazard
    if re.search(r"\bhurricane\b", lower_title) and not _title_place_name(lower_title, "hurricane"):
        return Hazard.HURRICANE.value

    words = lower_title.split()
    if not words:
        return "unknown"
    if words[0] in ("watch", "warning", "advisory"):
        return words[1] if len(words) > 1 else "unknown"
    return words[0]


def alert_id(prefix: str, *parts: Any) -> str:
    """Stable fallback id for alerts that arrive without one."""
    digest = hashlib.sha1("|".join(str(part) for part in parts).encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-alert-{digest}"


def classify_alert(
    source_prefix: str,
    title: Optional[str],
    description: Optional[str],
    full_text: Optional[str],
    api_severity: Optional[str] = None,
    alert_identifier: Optional[str] = None,
    urgency: Optional[str] = None,
    expires: Union[str, int, None] = None,
    geometry: Optional[Dict[str, Any]] = None,
) -> Alert:
    """Build a canonical Alert from a provider's raw alert fields."""
    title = title or "Weather Alert"
    description = description or ""
    full_text = full_text or ""
    return Alert(
        id=alert_identifier or alert_id(source_prefix, title, expires, full_text),
        title=title,
        description=description,
        full_text=full_text,
        severity=determine_severity(title, api_severity),
        urgency=urgency or "",
        expires=expires,
        hazard_types=identify_hazards(title, description, full_text),
        primary_hazard=primary_hazard(title),
        geometry=geometry,
    )
