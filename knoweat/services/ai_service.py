"""
Claude integration for menu photo analysis and dish retranslation.

This service provides two AI capabilities:
1. Menu analysis: photos -> structured, translated, restriction-tagged Menu
2. Retranslation: an existing dish list -> the same dishes in another language

Each call is a single self-contained request with no conversation memory.
Exactly one attempt is made; callers decide whether to retry by checking
MenuAnalysisError.is_retryable (see retry_on_retryable_error).
"""

import json
import re
import asyncio
import random
import logging
from functools import wraps
from typing import Optional, Sequence

import anthropic
import httpx
from anthropic import AsyncAnthropic
from pydantic import TypeAdapter, ValidationError

from knoweat.config import settings
from knoweat.models.menu import UNKNOWN_RESTAURANT, Dish, Menu
from knoweat.services.ai_schemas import DishSchema, MenuAnalysisSchema
from knoweat.services.image_service import (
    JPEG_MEDIA_TYPE,
    ImageEncodingError,
    encode_image,
)
from knoweat.services.prompts import (
    MENU_ANALYSIS_USER_TEXT,
    build_menu_analysis_prompt,
    build_retranslation_prompt,
)
from knoweat.services.taxonomy import is_known_tag


logger = logging.getLogger(__name__)

_dish_list_adapter = TypeAdapter(list[DishSchema])

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?(.*?)(?:```|\Z)", re.IGNORECASE | re.DOTALL)

# Separators the model sometimes uses inside multi-word ids ("tree nuts", "Kidney-Disease")
_TAG_SEPARATOR_RE = re.compile(r"[\s-]+")


def _strip_markdown_json(text: str) -> str:
    """Strip markdown code block wrappers (```json, ```JSON or bare ```) from JSON text."""
    match = _FENCE_RE.search(text)
    if match:
        text = match.group(1)
    return text.strip()


def _fix_trailing_commas(text: str) -> str:
    """Fix trailing commas in JSON (common LLM error)."""
    text = re.sub(r",\s*}", "}", text)
    text = re.sub(r",\s*]", "]", text)
    return text


def _decode_reply(text: str, stop_reason: Optional[str] = None):
    """Strip fences, repair trailing commas and JSON-decode a model reply."""
    json_str = _fix_trailing_commas(_strip_markdown_json(text))
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        if stop_reason == "max_tokens":
            logger.warning("AI reply was truncated at the output token limit")
        raise InvalidResponseError(
            f"Could not understand the API response: {e}"
        ) from e


def _normalize_tag_ids(dish_name: str, tag_ids: list[str]) -> frozenset[str]:
    normalized = {
        _TAG_SEPARATOR_RE.sub("_", t.strip().lower()) for t in tag_ids if t and t.strip()
    }
    unknown = {t for t in normalized if not is_known_tag(t)}
    if unknown:
        logger.warning(
            "Dropping unknown restriction tags for dish '%s': %s",
            dish_name,
            ", ".join(sorted(unknown)),
        )
    return frozenset(normalized - unknown)


def _to_dish(raw: DishSchema) -> Dish:
    """Build a new Dish (fresh id) from a validated reply entry."""
    return Dish(
        name=raw.name.strip(),
        description=raw.description,
        price=raw.price,
        category=raw.category,
        ingredients=tuple(i.strip() for i in raw.ingredients if i and i.strip()),
        restriction_tags=_normalize_tag_ids(raw.name, raw.tag_ids),
    )


def parse_menu_reply(
    text: str, user_language: str, stop_reason: Optional[str] = None
) -> Menu:
    """
    Turn the model's menu-analysis reply into a Menu.

    Raises:
        UnreadableMenuError: Reply has no restaurant, no dish list or an empty one
        InvalidResponseError: Reply is not JSON, not an object, or a dish is malformed
    """
    if not text or not text.strip():
        raise UnreadableMenuError()

    data = _decode_reply(text, stop_reason)
    if not isinstance(data, dict):
        raise InvalidResponseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    dishes = data.get("dishes")
    if data.get("restaurant") is None or dishes is None or dishes == []:
        raise UnreadableMenuError()

    try:
        parsed = MenuAnalysisSchema.model_validate(data)
    except ValidationError as e:
        logger.warning("AI menu reply failed schema validation: %s", e)
        raise InvalidResponseError(f"Menu reply failed validation: {e}") from e

    return Menu(
        restaurant=parsed.restaurant.strip() or UNKNOWN_RESTAURANT,
        dishes=[_to_dish(raw) for raw in parsed.dishes],
        category_icon=parsed.category_icon,
        menu_language=(parsed.menu_language or "").strip() or user_language,
    )


def parse_retranslation_reply(
    text: str, stop_reason: Optional[str] = None
) -> list[Dish]:
    """
    Turn the model's retranslation reply (a bare JSON array) into new Dishes.

    A {"dishes": [...]} wrapper is tolerated.
    """
    if not text or not text.strip():
        raise UnreadableMenuError()

    data = _decode_reply(text, stop_reason)
    if isinstance(data, dict) and isinstance(data.get("dishes"), list):
        data = data["dishes"]
    if not isinstance(data, list):
        raise InvalidResponseError(
            f"Expected a JSON array of dishes, got {type(data).__name__}"
        )

    try:
        parsed = _dish_list_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning("AI retranslation reply failed schema validation: %s", e)
        raise InvalidResponseError(f"Dish list failed validation: {e}") from e

    return [_to_dish(raw) for raw in parsed]


def _dish_payload(dish: Dish) -> dict:
    """Serialize a dish for the retranslation request, omitting absent fields."""
    payload = {"name": dish.name}
    if dish.description:
        payload["description"] = dish.description
    if dish.price:
        payload["price"] = dish.price
    if dish.category:
        payload["category"] = dish.category
    payload["ingredients"] = list(dish.ingredients)
    payload["tagIds"] = sorted(dish.restriction_tags)
    return payload


def retry_on_retryable_error(max_attempts=3, base_delay=1.0):
    """
    Caller-level retry decorator for menu analysis calls.

    Retries only errors whose is_retryable flag is set (timeouts and upstream
    failures); content and contract errors are raised immediately.

    Args:
        max_attempts: Maximum attempts including the first (default 3)
        base_delay: Base delay in seconds for exponential backoff (default 1.0)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except MenuAnalysisError as e:
                    if not e.is_retryable or attempt == max_attempts - 1:
                        raise

                    # Exponential backoff with jitter
                    delay = base_delay * (2**attempt)
                    jitter = delay * 0.1 * (2 * random.random() - 1)  # ±10%
                    sleep_time = delay + jitter

                    logger.warning(
                        "%s on attempt %d/%d, retrying in %.1fs...",
                        type(e).__name__,
                        attempt + 1,
                        max_attempts,
                        sleep_time,
                    )
                    await asyncio.sleep(sleep_time)

        return wrapper

    return decorator


class MenuAIService:
    """Claude API client for menu analysis and retranslation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        jpeg_quality: Optional[int] = None,
        max_image_width: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.api_key = settings.anthropic_api_key if api_key is None else api_key
        self.model = model or settings.menu_model
        self.timeout = timeout or settings.anthropic_timeout
        self.connect_timeout = connect_timeout or settings.anthropic_connect_timeout
        self.max_tokens = max_tokens or settings.analysis_max_tokens
        self.temperature = (
            settings.analysis_temperature if temperature is None else temperature
        )
        self.jpeg_quality = jpeg_quality or settings.jpeg_quality
        self.max_image_width = max_image_width or settings.max_image_width
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        # Built on first use so a missing key surfaces as InvalidAPIKeyError
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.api_key,
                timeout=httpx.Timeout(
                    timeout=self.timeout, connect=self.connect_timeout
                ),
                max_retries=0,
            )
        return self._client

    @client.setter
    def client(self, value: AsyncAnthropic):
        self._client = value

    # =========================================================================
    # MENU ANALYSIS
    # =========================================================================

    async def analyze_menu(self, images: Sequence[bytes], user_language: str) -> Menu:
        """
        Analyze menu photos into a structured, translated, tagged Menu.

        Args:
            images: Raw bytes of one or more menu photos (any Pillow format)
            user_language: Language the dish names and ingredients are translated to

        Returns:
            New Menu. menu_language falls back to user_language when the model
            omits it; category_icon falls back to "restaurant".

        Raises:
            InvalidAPIKeyError: No API key configured, or the key was rejected
            EncodingFailedError: No photos, or a photo could not be re-encoded
            UnreadableMenuError: Model replied without a usable dish list
            InvalidResponseError: Model reply was not valid menu JSON
            AnalysisTimeoutError: Call exceeded the timeout
            ServerError: Any other upstream failure
        """
        self._ensure_api_key()

        if not images:
            raise EncodingFailedError("No menu photos were provided.")

        try:
            encoded = [
                encode_image(
                    data, quality=self.jpeg_quality, max_width=self.max_image_width
                )
                for data in images
            ]
        except ImageEncodingError as e:
            raise EncodingFailedError(f"Failed to encode the menu images: {e}") from e

        content = [{"type": "text", "text": MENU_ANALYSIS_USER_TEXT}]
        for image_data in encoded:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": JPEG_MEDIA_TYPE,
                        "data": image_data,
                    },
                }
            )

        response_text, stop_reason = await self._complete(
            system=build_menu_analysis_prompt(user_language),
            content=content,
        )

        menu = parse_menu_reply(response_text, user_language, stop_reason)
        logger.info(
            "Analyzed menu '%s': %d dishes from %d photo(s), language %s",
            menu.restaurant,
            len(menu.dishes),
            len(encoded),
            menu.menu_language,
        )
        return menu

    # =========================================================================
    # RETRANSLATION
    # =========================================================================

    async def retranslate_dishes(
        self, dishes: Sequence[Dish], target_language: str
    ) -> list[Dish]:
        """
        Translate an already-structured dish list into target_language.

        Name, category and ingredients are translated; description, price and
        restriction tags are copied verbatim. Returned dishes are new entities
        with fresh ids.

        Raises:
            Same as analyze_menu, except EncodingFailedError.
        """
        if not dishes:
            return []

        self._ensure_api_key()

        payload = json.dumps([_dish_payload(d) for d in dishes], ensure_ascii=False)

        response_text, stop_reason = await self._complete(
            system=build_retranslation_prompt(target_language),
            content=payload,
        )

        translated = parse_retranslation_reply(response_text, stop_reason)
        if not translated:
            raise UnreadableMenuError()
        if len(translated) != len(dishes):
            logger.warning(
                "Retranslation returned %d dishes for %d sent",
                len(translated),
                len(dishes),
            )

        logger.info(
            "Retranslated %d dishes to %s", len(translated), target_language
        )
        return translated

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _ensure_api_key(self):
        if not self.api_key:
            raise InvalidAPIKeyError()

    async def _complete(self, system: str, content) -> tuple[str, Optional[str]]:
        """
        Make one model call and return (reply text, stop reason).

        Maps transport failures onto the MenuAnalysisError taxonomy.
        """
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APITimeoutError as e:
            raise AnalysisTimeoutError() from e
        except anthropic.APIConnectionError as e:
            raise ServerError(f"AI service unreachable: {e}") from e
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise InvalidAPIKeyError() from e
        except anthropic.RateLimitError as e:
            raise ServerError(
                "Too many requests, please try again in 1 minute"
            ) from e
        except anthropic.APIStatusError as e:
            if e.status_code in (408, 504):
                raise AnalysisTimeoutError() from e
            raise ServerError(f"API error ({e.status_code}): {e.message}") from e

        # Extract text from response (handle multi-block responses)
        response_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                response_text += block.text

        return response_text, getattr(response, "stop_reason", None)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class MenuAnalysisError(Exception):
    """Base class for menu analysis and retranslation failures."""

    is_retryable = False
    title = "Error"
    default_message = "Menu analysis failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidAPIKeyError(MenuAnalysisError):
    """No API key configured, or the configured key was rejected."""

    default_message = "Invalid API key. Set ANTHROPIC_API_KEY in the environment or .env file."


class EncodingFailedError(MenuAnalysisError):
    """A menu photo could not be serialized for the request."""

    default_message = "Failed to encode the menu images."


class UnreadableMenuError(MenuAnalysisError):
    """The model replied but found no usable dishes."""

    title = "Unreadable Menu"
    default_message = (
        "We couldn't read this menu. Try retaking the photo with good lighting "
        "and the whole menu in frame."
    )


class InvalidResponseError(MenuAnalysisError):
    """The model reply broke the JSON contract."""

    default_message = "Could not understand the API response."


class AnalysisTimeoutError(MenuAnalysisError):
    """The call exceeded its deadline."""

    is_retryable = True
    title = "Connection Timeout"
    default_message = "The request timed out. Check your connection and try again."


class ServerError(MenuAnalysisError):
    """Upstream failure; message is passed through for diagnostics."""

    is_retryable = True
    default_message = "AI service error"
