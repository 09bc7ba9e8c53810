"""
Entity Extraction — Named entities with confidence scores and locators.

Sources, in merge order:
    schema  schema.org JSON-LD fields (confidence 1.0)
    regex   unambiguous patterns only: emails, URLs, phone numbers
    llm     semantic entities from the model (organizations, products, people, ...)

An entity seen by more than one source keeps the first record and averages
in the model's confidence.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError

from pagelens.core.document import Document, json_ld_types
from pagelens.enrichment.content import page_prose
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.response_parser import optional_text, payload_shape
from pagelens.models.enrichment_models import (
    ENTITY_TYPES,
    Entity,
    EntityExtractionResult,
    EntityLocator,
    EntitySummary,
)
from pagelens.models.llm_models import CallOverrides

logger = logging.getLogger("pagelens.enrichment.entities")

EMAIL_RE = re.compile(r"\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b")
URL_RE = re.compile(r"\b(https?://[^\s<>\"{}|\\^`\[\]]+)", re.IGNORECASE)
PHONE_RES = (
    re.compile(r"\b(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})\b"),
    re.compile(r"\b(\+\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9})\b"),
)
PHONE_CONTEXT_RE = re.compile(r"phone|call|contact|tel|telephone|mobile|cell", re.IGNORECASE)
_NON_DIGIT_RE = re.compile(r"\D")

MAX_URL_LENGTH = 200
SNIPPET_RADIUS = 50
PHONE_CONTEXT_RADIUS = 100
SCHEMA_SELECTOR = 'script[type="application/ld+json"]'
MODEL_CONTENT_CHARS = 4000

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

ENTITY_SYSTEM_PROMPT = (
    "You are an expert at named entity recognition. Extract entities accurately and return valid JSON only."
)

ENTITY_USER_PROMPT = """\
Analyze this content and extract ALL named entities. Be comprehensive but accurate.

For each entity found, provide:
1. The entity name (exact text as it appears)
2. Entity type: organization, product, person, date, number, or location
3. Confidence score (0.0-1.0) - how certain you are this is a real entity
4. Brief context (why this is an entity, what role it plays)

Content:
\"\"\"
{content}
\"\"\"

Return ONLY a JSON array with this structure (no other text):
[
  {{"name": "TechCorp Inc", "type": "organization", "confidence": 0.95, "context": "Company mentioned as developer of the platform"}},
  {{"name": "CloudMaster Pro", "type": "product", "confidence": 0.9, "context": "Software product being described"}}
]

Guidelines:
- Organizations: Companies, agencies, foundations, universities
- Products: Software, apps, platforms, devices, services (NOT single generic words like "Code" or "Learn")
- People: Full names with titles/roles (CEO, founder, author, Dr., etc.)
- Dates: Specific dates, year ranges, time periods
- Numbers: Prices, percentages, metrics, statistics (with units/context)
- Locations: Cities, countries, addresses, regions

Skip navigation items and generic UI text. Return ONLY the JSON array, nothing else."""


def context_snippet(text: str, position: int, match: str) -> str:
    """``SNIPPET_RADIUS`` characters either side of a match, elided with "..."."""
    start = max(0, position - SNIPPET_RADIUS)
    end = min(len(text), position + len(match) + SNIPPET_RADIUS)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return " ".join(snippet.split())


def _regex_entity(text: str, match: re.Match, entity_type: str, confidence: float, **extra: Any) -> Entity:
    value = match.group(1)
    return Entity(
        name=value,
        type=entity_type,
        confidence=confidence,
        locator=EntityLocator(text_snippet=context_snippet(text, match.start(1), value), position=match.start(1)),
        source="regex",
        **extra,
    )


def extract_structured_entities(text: str) -> list[Entity]:
    """Emails, URLs and phone numbers found in ``text``."""
    entities: list[Entity] = []
    seen: set[str] = set()

    for match in EMAIL_RE.finditer(text):
        key = f"email:{match.group(1).lower()}"
        if key not in seen:
            seen.add(key)
            entities.append(_regex_entity(text, match, "email", 0.95, schema_field="email"))

    for match in URL_RE.finditer(text):
        url = match.group(1)
        key = f"url:{url.lower()}"
        if key not in seen and len(url) <= MAX_URL_LENGTH:
            seen.add(key)
            entities.append(_regex_entity(text, match, "url", 0.95, schema_field="url"))

    for pattern in PHONE_RES:
        for match in pattern.finditer(text):
            key = f"phone:{_NON_DIGIT_RE.sub('', match.group(1))}"
            if key in seen:
                continue
            seen.add(key)
            window = text[max(0, match.start() - PHONE_CONTEXT_RADIUS) : match.start() + PHONE_CONTEXT_RADIUS]
            has_context = PHONE_CONTEXT_RE.search(window) is not None
            entities.append(_regex_entity(
                text,
                match,
                "phone",
                0.9 if has_context else 0.7,
                schema_field="telephone",
                context="contact information" if has_context else None,
            ))
    return entities


def _schema_entity(name: Any, entity_type: str, snippet: str, field: str, **extra: Any) -> Entity:
    return Entity(
        name=str(name),
        type=entity_type,
        confidence=1.0,
        locator=EntityLocator(selector=SCHEMA_SELECTOR, text_snippet=snippet, position=0),
        source="schema",
        schema_field=field,
        **extra,
    )


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_schema_entities(document: Document) -> list[Entity]:
    """Entities declared in JSON-LD: organizations, products, people and dates."""
    entities: list[Entity] = []
    for item in document.json_ld():
        types = json_ld_types(item)

        if "Organization" in types or "LocalBusiness" in types:
            label = "Organization" if "Organization" in types else "LocalBusiness"
            if item.get("name"):
                entities.append(_schema_entity(
                    item["name"], "organization", f"Schema.org {label}", "name", normalized=str(item["name"])
                ))
            if item.get("email"):
                entities.append(_schema_entity(item["email"], "email", "Schema.org email", "email"))
            if item.get("telephone"):
                entities.append(_schema_entity(item["telephone"], "phone", "Schema.org telephone", "telephone"))
            address = item.get("address")
            if isinstance(address, dict):
                parts = [
                    address.get(k)
                    for k in ("streetAddress", "addressLocality", "addressRegion", "postalCode", "addressCountry")
                ]
                location = ", ".join(str(p) for p in parts if p)
                if location:
                    entities.append(_schema_entity(location, "location", "Schema.org address", "address"))

        if "Product" in types:
            if item.get("name"):
                entities.append(_schema_entity(item["name"], "product", "Schema.org Product", "name"))
            offer = _first(item.get("offers"))
            if isinstance(offer, dict) and offer.get("price"):
                price = f"{offer.get('priceCurrency') or '$'}{offer['price']}"
                entities.append(_schema_entity(
                    price, "number", "Schema.org price", "price", context="price", normalized=str(offer["price"])
                ))

        person = item if "Person" in types else _first(item.get("author"))
        if isinstance(person, dict) and person.get("name"):
            entities.append(_schema_entity(person["name"], "person", "Schema.org Person/Author", "author"))

        for field in ("datePublished", "dateModified"):
            if item.get(field):
                entities.append(_schema_entity(
                    item[field], "date", f"Schema.org {field}", field, normalized=str(item[field])
                ))
    return entities


def _model_entity(item: dict[str, Any], text: str) -> Entity | None:
    name = optional_text(item.get("name"))
    entity_type = str(item.get("type", "")).lower()
    if not name or entity_type not in ENTITY_TYPES or not item.get("confidence"):
        return None
    try:
        confidence = min(1.0, max(0.0, float(item["confidence"])))
    except (TypeError, ValueError):
        return None
    context = optional_text(item.get("context"))
    return Entity(
        name=name,
        type=entity_type,
        confidence=confidence,
        locator=EntityLocator(text_snippet=context or "Found by model analysis", position=text.find(name)),
        source="llm",
        context=context,
    )


def parse_model_entities(data: Any, text: str) -> list[Entity]:
    if not isinstance(data, list):
        logger.warning("Model returned a non-array entity answer")
        return []
    entities: list[Entity] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            entity = _model_entity(item, text)
        except ValidationError as e:
            logger.debug(f"Skipping malformed entity {item!r}: {e}")
            continue
        if entity is not None:
            entities.append(entity)
    return entities


async def extract_model_entities(text: str, gateway: LLMGateway) -> list[Entity]:
    data = await gateway.complete_json(
        ENTITY_SYSTEM_PROMPT,
        ENTITY_USER_PROMPT.format(content=text[:MODEL_CONTENT_CHARS]),
        CallOverrides(temperature=0.2, max_tokens=2500),
        context="entity extraction",
    )
    with payload_shape("entity extraction"):
        return parse_model_entities(data, text)


def summarize_entities(entities: list[Entity]) -> EntitySummary:
    by_type = {entity_type: 0 for entity_type in ENTITY_TYPES}
    for entity in entities:
        by_type[entity.type] += 1
    return EntitySummary(
        total_entities=len(entities),
        by_type=by_type,
        high_confidence=sum(1 for e in entities if e.confidence >= HIGH_CONFIDENCE),
        medium_confidence=sum(1 for e in entities if MEDIUM_CONFIDENCE <= e.confidence < HIGH_CONFIDENCE),
        low_confidence=sum(1 for e in entities if e.confidence < MEDIUM_CONFIDENCE),
    )


def _key(entity: Entity) -> str:
    return f"{entity.type}:{entity.name.lower()}"


def merge_entities(schema: list[Entity], structured: list[Entity], model: list[Entity]) -> list[Entity]:
    merged: dict[str, Entity] = {}
    for entity in schema + structured:
        merged.setdefault(_key(entity), entity)
    for entity in model:
        key = _key(entity)
        existing = merged.get(key)
        if existing is None:
            merged[key] = entity
            continue
        update: dict[str, Any] = {"confidence": (existing.confidence + entity.confidence) / 2}
        if entity.context and not existing.context:
            update["context"] = entity.context
        merged[key] = existing.model_copy(update=update)
    return list(merged.values())


async def extract_entities(
    document: Document,
    gateway: LLMGateway | None = None,
    min_confidence: float | None = None,
) -> EntityExtractionResult:
    """
    Extract, merge and summarize the page's named entities.

    Model failures propagate to the caller; without a gateway only the schema
    and regex sources run.
    """
    text = page_prose(document)
    structured = extract_structured_entities(text)
    schema = extract_schema_entities(document)
    model = await extract_model_entities(text, gateway) if gateway is not None else []

    entities = merge_entities(schema, structured, model)
    if min_confidence is not None:
        entities = [e for e in entities if e.confidence >= min_confidence]
    entities.sort(key=lambda e: e.confidence, reverse=True)

    mapping: dict[str, list[Entity]] = {}
    for entity in entities:
        if entity.schema_field:
            mapping.setdefault(entity.schema_field, []).append(entity)

    logger.debug(f"Extracted {len(entities)} entities from {document.url}")
    return EntityExtractionResult(entities=entities, summary=summarize_entities(entities), schema_mapping=mapping)
