# src/core/topics.py
"""
Адресация топиков шины публикаций.

Грамматика фиксирована: ровно три сегмента через двоеточие,
`<kind>:<id>:location`, где kind ∈ {driver, shipment}.
Wildcard `*` допускается только вместо целого сегмента.
"""

from __future__ import annotations

from src.common.constants import TopicKind
from src.core.exceptions import ValidationError

SEPARATOR = ":"
WILDCARD = "*"
LOCATION_SUFFIX = "location"

DRIVER_LOCATION_PATTERN = f"{TopicKind.DRIVER.value}:{WILDCARD}:{LOCATION_SUFFIX}"
SHIPMENT_LOCATION_PATTERN = f"{TopicKind.SHIPMENT.value}:{WILDCARD}:{LOCATION_SUFFIX}"


def make_topic(kind: TopicKind, entity_id: int | str) -> str:
    """Собирает топик `<kind>:<id>:location`."""
    entity = str(entity_id).strip()
    if not entity or SEPARATOR in entity or entity == WILDCARD:
        raise ValidationError(f"Некорректный идентификатор для топика: {entity_id!r}")
    return f"{kind.value}{SEPARATOR}{entity}{SEPARATOR}{LOCATION_SUFFIX}"


def driver_topic(driver_id: int | str) -> str:
    """Топик локации водителя."""
    return make_topic(TopicKind.DRIVER, driver_id)


def shipment_topic(shipment_id: int | str) -> str:
    """Топик локации отправления."""
    return make_topic(TopicKind.SHIPMENT, shipment_id)


def parse_topic(topic: str) -> tuple[TopicKind, str]:
    """
    Разбирает топик на (kind, id).

    Raises:
        ValidationError: если топик не соответствует грамматике
    """
    parts = topic.split(SEPARATOR)
    if len(parts) != 3 or parts[2] != LOCATION_SUFFIX or not parts[1] or parts[1] == WILDCARD:
        raise ValidationError(f"Некорректный топик: {topic!r}")
    try:
        kind = TopicKind(parts[0])
    except ValueError:
        raise ValidationError(f"Неизвестный вид топика: {parts[0]!r}") from None
    return kind, parts[1]


def is_valid_topic(topic: str) -> bool:
    """Проверяет соответствие топика грамматике."""
    try:
        parse_topic(topic)
    except ValidationError:
        return False
    return True


def topic_matches(pattern: str, topic: str) -> bool:
    """
    Посегментное сравнение топика с паттерном.

    `driver:*:location` совпадает с `driver:7:location`,
    но не с `driver:7:x:location`.
    """
    pattern_parts = pattern.split(SEPARATOR)
    topic_parts = topic.split(SEPARATOR)
    if len(pattern_parts) != len(topic_parts):
        return False
    for expected, actual in zip(pattern_parts, topic_parts):
        if expected == WILDCARD:
            if not actual:
                return False
            continue
        if expected != actual:
            return False
    return True


def wildcard_segment(pattern: str, topic: str) -> str | None:
    """
    Возвращает сегмент топика, захваченный первым `*` паттерна.

    None — если топик не совпадает с паттерном или в паттерне нет wildcard.
    """
    if not topic_matches(pattern, topic):
        return None
    for expected, actual in zip(pattern.split(SEPARATOR), topic.split(SEPARATOR)):
        if expected == WILDCARD:
            return actual
    return None
