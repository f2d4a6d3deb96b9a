"""
Provider-agnostic LLM client for form generation.

Supports Google Gemini, Anthropic, and OpenAI with a shared text-generation
interface. Example images can be attached as base64 parts.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger("formsmith.common.llm_client")


@dataclass
class ImagePart:
    """An inline image attached to a generation request"""
    data: str  # base64-encoded bytes
    mime_type: str = "image/jpeg"


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        google_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client = None
        self._google_models = {}

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai  # Store the module, not a model instance
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.Anthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import OpenAI

                self._client = OpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        images: Optional[List[ImagePart]] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        timeout: float = 60.0,
    ) -> str:
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        model_name = model or self.model
        images = images or []

        if self.provider == "google":
            cache_key = (model_name, hashlib.md5((system or "").encode()).hexdigest())
            if cache_key not in self._google_models:
                kwargs = {"model_name": model_name}
                if system:
                    kwargs["system_instruction"] = system
                self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
            gmodel = self._google_models[cache_key]
            content = [prompt] + [
                {"mime_type": img.mime_type, "data": base64.b64decode(img.data)}
                for img in images
            ]
            response = gmodel.generate_content(
                content if images else prompt,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": timeout},
            )
            return response.text.strip()

        if self.provider == "anthropic":
            user_content = [
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": img.mime_type, "data": img.data},
                }
                for img in images
            ]
            user_content.append({"type": "text", "text": prompt})
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = self._client.messages.create(
                model=model_name,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": user_content}],
                timeout=timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            if images:
                parts = [{"type": "text", "text": prompt}] + [
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{img.mime_type};base64,{img.data}"},
                    }
                    for img in images
                ]
                messages.append({"role": "user", "content": parts})
            else:
                messages.append({"role": "user", "content": prompt})
            response = self._client.chat.completions.create(
                model=model_name,
                max_tokens=max_tokens,
                messages=messages,
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")


def create_llm_client(llm_config) -> LLMClient:
    """Build an LLMClient from an LLMConfig section"""
    model = {
        "google": llm_config.google_model,
        "anthropic": llm_config.anthropic_model,
        "openai": llm_config.openai_model,
    }.get((llm_config.provider or "").lower(), "")
    return LLMClient(
        provider=llm_config.provider,
        model=model,
        google_api_key=llm_config.google_api_key or None,
        anthropic_api_key=llm_config.anthropic_api_key or None,
        openai_api_key=llm_config.openai_api_key or None,
    )
