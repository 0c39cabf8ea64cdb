"""
CDN lookup for assets whose original host could not be reached.

The lookup is delegated to a text-completion model; the recovery engine
only relies on the ``CdnResolver`` protocol.
"""

import os
from typing import Optional, Protocol

from google import genai

from ..utils.constants import CDN_NOT_FOUND, DEFAULT_CDN_MODEL
from ..utils.log import get_logger
from ..utils.paths import get_filename


CDN_PROMPT = """
A web asset download failed from the URL: {url}
The filename is: {file_name}

Find a reliable, public CDN URL for this exact library and version.
Prioritize popular CDNs like cdnjs, jsDelivr, or unpkg.

Return ONLY the raw CDN URL. Do not include any explanation, markdown, or extra text.
If you cannot find a URL, return the string "{not_found}".

Example response for a file named 'jquery-3.6.0.min.js':
https://cdnjs.cloudflare.com/ajax/libs/jquery/3.6.0/jquery.min.js
"""


class CdnResolver(Protocol):
    """Finds an alternate public source for a failed asset."""

    async def find_alternate_source(self, failed_url: str) -> Optional[str]:
        ...


class GeminiCdnResolver:
    """
    CDN resolver backed by a Gemini text completion.

    Answers are returned as-is apart from whitespace; validating that the
    suggestion is plausible is up to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_CDN_MODEL,
        client: Optional[genai.Client] = None
    ):
        """
        Initialize the resolver.

        Args:
            api_key: Gemini API key (default: GEMINI_API_KEY environment variable)
            model: Model name used for the lookup
            client: Preconfigured client to use instead of creating one
        """
        self.model = model
        self.logger = get_logger("cdn")
        self.client = client or genai.Client(
            api_key=api_key or os.environ.get("GEMINI_API_KEY")
        )

    async def find_alternate_source(self, failed_url: str) -> Optional[str]:
        """
        Ask the model for a CDN URL hosting the same file.

        Args:
            failed_url: URL that could not be fetched

        Returns:
            Suggested URL, or None when the model has no answer
        """
        file_name = get_filename(failed_url)
        if not file_name:
            return None

        prompt = CDN_PROMPT.format(
            url=failed_url,
            file_name=file_name,
            not_found=CDN_NOT_FOUND
        )
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt
        )

        answer = (response.text or '').strip()
        if not answer or answer == CDN_NOT_FOUND:
            self.logger.debug(f"No CDN suggestion for {file_name}")
            return None

        self.logger.debug(f"CDN suggestion for {file_name}: {answer}")
        return answer
