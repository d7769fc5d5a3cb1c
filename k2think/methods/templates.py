"""Ready-made structured method templates."""

from __future__ import annotations

from typing import Any


def _non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def _has_keys(*keys: str):
    def check(value: Any) -> bool:
        return isinstance(value, dict) and all(value.get(k) for k in keys)

    return check


TEMPLATES: dict[str, dict[str, Any]] = {
    "textAnalyzer": {
        "description": "Analyze text for sentiment, themes and keywords",
        "system_prompt": "You are a text analyst. Analyze the text and return a structured analysis.",
        "json_schema": {
            "type": "object",
            "required": ["sentiment", "themes", "keywords", "summary"],
            "properties": {
                "sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
                "themes": {"type": "array", "items": {"type": "string"}},
                "keywords": {"type": "array", "items": {"type": "string"}},
                "summary": {"type": "string"},
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            },
        },
    },
    "contentGenerator": {
        "description": "Generate content from the given parameters",
        "system_prompt": "You are a copywriter. Write content for the request.",
        "json_schema": {
            "type": "object",
            "required": ["title", "content", "tags"],
            "properties": {
                "title": {"type": "string"},
                "content": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "category": {"type": "string"},
                "word_count": {"type": "number"},
            },
        },
    },
    "classifier": {
        "description": "Classify an object into categories",
        "system_prompt": "You are a classifier. Analyze the object and return its classification.",
        "json_schema": {
            "type": "object",
            "required": ["category", "confidence"],
            "properties": {
                "category": {"type": "string"},
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                "subcategories": {"type": "array", "items": {"type": "string"}},
                "reasoning": {"type": "string"},
            },
        },
        "input_validator": _non_empty_text,
    },
    "translator": {
        "description": "Translate text between languages",
        "system_prompt": "You are a translator. Translate the text from the source language to the target language.",
        "json_schema": {
            "type": "object",
            "required": ["original_text", "translated_text", "source_language", "target_language"],
            "properties": {
                "original_text": {"type": "string"},
                "translated_text": {"type": "string"},
                "source_language": {"type": "string"},
                "target_language": {"type": "string"},
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            },
        },
        "input_validator": _has_keys("text", "from", "to"),
    },
    "dataExtractor": {
        "description": "Extract structured data from text",
        "system_prompt": "You are a data extractor. Pull the requested information out of the text.",
        "json_schema": {"type": "object", "properties": {}},
    },
    "sentimentAnalyzer": {
        "description": "Detailed sentiment analysis",
        "system_prompt": "Analyze the sentiment of the text in detail.",
        "json_schema": {
            "type": "object",
            "required": ["overall_sentiment", "sentiment_score", "emotions"],
            "properties": {
                "overall_sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
                "sentiment_score": {"type": "number", "minimum": -1, "maximum": 1},
                "emotions": {"type": "array", "items": {"type": "string"}},
                "key_points": {"type": "array", "items": {"type": "string"}},
                "recommendation": {"type": "string", "enum": ["recommends", "does not recommend", "neutral"]},
                "intensity": {"type": "string", "enum": ["weak", "moderate", "strong"]},
            },
        },
    },
    "productDescriber": {
        "description": "Write product descriptions",
        "system_prompt": "You are an online-store copywriter. Write an appealing product description.",
        "json_schema": {
            "type": "object",
            "required": ["title", "description", "features", "call_to_action"],
            "properties": {
                "title": {"type": "string"},
                "description": {"type": "string"},
                "features": {"type": "array", "items": {"type": "string"}},
                "call_to_action": {"type": "string"},
                "benefits": {"type": "array", "items": {"type": "string"}},
                "target_audience": {"type": "string"},
            },
        },
        "input_validator": _has_keys("name", "category"),
    },
}
