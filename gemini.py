import logging

import requests

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI writing assistant. Generate well-formatted markdown content "
    "based on the user's request. Include appropriate markdown formatting like headers, "
    "lists, code blocks, etc. Your response should be in pure markdown format that can "
    "be directly used in a blog post."
)

GENERATION_CONFIG = {"temperature": 0.7, "maxOutputTokens": 2048}


class GenerationError(Exception):
    pass


def _call_model(api_url, api_key, model, prompt, timeout):
    resp = requests.post(
        f"{api_url.rstrip('/')}/models/{model}:generateContent",
        params={"key": api_key},
        json={
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        },
        timeout=timeout,
    )
    if resp.status_code != 200:
        try:
            message = resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            message = resp.text or resp.reason
        raise GenerationError(f"[{resp.status_code}] {message}")

    data = resp.json()
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise GenerationError(f"Model {model} returned no content")
    return "".join(part.get("text", "") for part in parts)


def generate_markdown(prompt, api_key, models, api_url, timeout=60):
    """Generate blog-ready markdown for `prompt`.

    Models are tried in order; the first one that answers wins. Raises
    GenerationError when the key is missing or every model fails.
    """
    if not api_key:
        raise GenerationError(
            "Gemini API key is missing. Please check your environment variables."
        )

    full_prompt = SYSTEM_PROMPT + "\n\nUser request: " + prompt
    last_error = None

    for model in models:
        logger.info("Trying model: %s", model)
        try:
            return _call_model(api_url, api_key, model, full_prompt, timeout)
        except (GenerationError, requests.RequestException) as e:
            logger.warning("Model %s failed: %s", model, e)
            last_error = e

    raise GenerationError(
        f"All Gemini models failed. Last error: {last_error or 'Unknown error'}"
    )


def friendly_error_message(error):
    """Readable copy for the editor, keyed on the error text."""
    text = str(error).lower()
    if "api key" in text:
        return "Invalid or missing API key. Please check your Gemini API key configuration."
    if "model" in text and "not found" in text:
        return (
            "The Gemini model is not available with your current API key or region. "
            "Please ensure you have access to Gemini Pro or try a different API key."
        )
    if "permission" in text or "access" in text:
        return (
            "You don't have permission to use this model. "
            "Make sure your API key has access to Gemini AI models."
        )
    if "network" in text or "connection" in text:
        return (
            "Network error while connecting to Gemini API. "
            "Please check your internet connection and try again."
        )
    if "timeout" in text or "timed out" in text:
        return "The request to Gemini timed out. Please try again with a shorter prompt."
    return str(error) or "An unknown error occurred while generating content."
