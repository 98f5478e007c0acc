"""Scraper for the El Cabong agenda page."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests
from bs4 import BeautifulSoup

from processor.errors import NetworkError, ScrapeError
from processor.models import ScrapedEvent

logger = logging.getLogger(__name__)

FALLBACK_IMAGE = '/images/astro-post.jpg'


class AgendaScraper:
    """Scraper for the El Cabong online agenda."""

    TARGET_URL = "https://elcabong.com.br/agenda/"
    LOCATION = "El Cabong"

    def __init__(self, url: str = TARGET_URL, timeout: int = 30):
        """
        Initialize the agenda scraper.

        Args:
            url: Agenda page URL
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.url = url
        self.timeout = timeout

    def scrape(self) -> List[ScrapedEvent]:
        """
        Fetch the agenda page and extract its events.

        Returns:
            List of ScrapedEvent objects

        Raises:
            NetworkError: If the page cannot be fetched
            ScrapeError: If no events are found or an event is malformed
        """
        logger.info(f"Scraping events from {self.url}")

        html_content = self._fetch_html()
        events = self._parse_events(html_content)

        logger.info(f"Successfully scraped {len(events)} events")
        return events

    def _fetch_html(self) -> str:
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch agenda page: {e}")
            raise NetworkError(f"Failed to fetch {self.url}: {e}") from e

        return response.text

    def _parse_events(self, html_content: str) -> List[ScrapedEvent]:
        """
        Parse events from agenda HTML.

        Args:
            html_content: HTML content from the agenda page

        Returns:
            List of ScrapedEvent objects
        """
        soup = BeautifulSoup(html_content, 'html.parser')

        event_elements = soup.select('.evento')
        if not event_elements:
            raise ScrapeError(f"No event elements found at {self.url}")

        return [
            self._parse_event_element(element, index)
            for index, element in enumerate(event_elements)
        ]

    def _parse_event_element(self, element, index: int) -> ScrapedEvent:
        """
        Parse a single event element.

        Args:
            element: BeautifulSoup element for one '.evento' container
            index: Position of the element, for error messages

        Returns:
            ScrapedEvent object
        """
        title = self._text(element, '.evento__titulo')
        if not title:
            raise ScrapeError(f"Event element {index} has no title")

        date_time = self._text(element, '.evento__data')
        start_time = self._parse_date_time(date_time)
        if start_time is None:
            raise ScrapeError(
                f"Event '{title}' has an invalid date/time: {date_time!r}"
            )

        image_elem = element.select_one('.evento__imagem img')
        image_url = image_elem.get('src') if image_elem else None

        # The agenda lists only a start time
        return ScrapedEvent(
            name=title,
            start_time=start_time,
            end_time=start_time,
            location=self.LOCATION,
            description=self._text(element, '.evento__descricao'),
            image_url=image_url or FALLBACK_IMAGE
        )

    def _parse_date_time(self, date_time: str) -> Optional[datetime]:
        """
        Parse a 'YYYY-MM-DD HH:MM' agenda string as UTC.

        Only the first two whitespace-separated tokens are used; trailing
        text such as 'h' or an end time is ignored.

        Args:
            date_time: Combined date and time text

        Returns:
            Timezone-aware datetime or None if parsing fails
        """
        tokens = date_time.split()
        if len(tokens) < 2:
            return None

        date, time_part = tokens[0], tokens[1]
        try:
            parsed = datetime.fromisoformat(f"{date}T{time_part}:00")
        except ValueError:
            return None

        return parsed.replace(tzinfo=timezone.utc)

    @staticmethod
    def _text(element, selector: str) -> str:
        found = element.select_one(selector)
        return found.get_text(strip=True) if found else ''
