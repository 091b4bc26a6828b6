import json
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import requests
from sqlalchemy.exc import SQLAlchemyError

from .accounts import STORE_NOT_CONFIGURED
from .errors import ConfigurationError, UpstreamError, ValidationError
from .models import ClubLogo, utcnow

logger = logging.getLogger(__name__)

# Club names as players type them -> names TheSportsDB knows
NAME_ALIASES = {
    'real madryt': 'Real Madrid',
    'barcelona': 'Barcelona',
    'juventus': 'Juventus',
    'liverpool': 'Liverpool',
}


def normalize_club(name: str) -> str:
    return (name or '').strip().lower()


def load_overrides(path: Optional[str]) -> Dict[str, str]:
    """Static club -> logo URL map from a JSON file, keyed by normalized name."""
    if not path:
        return {}
    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    return {normalize_club(k): v for k, v in data.items() if v}


class ClubLogoResolver:
    """
    Looks up club badges on TheSportsDB and remembers the URL for
    `cache_days` in the club_logos table.
    """

    def __init__(
        self,
        database=None,
        api_key: str = '123',
        base_url: str = 'https://www.thesportsdb.com/api/v1/json',
        cache_days: int = 30,
        overrides: Dict[str, str] = None,
        timeout: int = 10
    ):
        self._db = database
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.cache_ttl = timedelta(days=cache_days)
        self.overrides = overrides or {}
        self.timeout = timeout

    @property
    def session(self):
        if self._db is None:
            raise ConfigurationError(STORE_NOT_CONFIGURED)
        return self._db.session

    def resolve_logo(self, club_name: str, now: datetime = None) -> Optional[Tuple[str, str]]:
        """
        Returns:
            (url, source) where source is 'local', 'cache' or 'api', or None
            when the club is unknown.
        """
        name = (club_name or '').strip()
        if not name:
            raise ValidationError('Club name is required.')

        key = normalize_club(name)
        if key in self.overrides:
            return self.overrides[key], 'local'

        now = now or utcnow()
        cached = self.session.query(ClubLogo).filter_by(club_name=key).first()
        if cached and cached.updated_at and now - cached.updated_at < self.cache_ttl:
            return cached.url, 'cache'

        url = self._fetch_badge(NAME_ALIASES.get(key, name))
        if not url:
            return None

        self._store(key, url, cached, now)
        return url, 'api'

    def _fetch_badge(self, api_name: str) -> Optional[str]:
        endpoint = f"{self.base_url}/{self.api_key}/searchteams.php"
        try:
            resp = requests.get(endpoint, params={'t': api_name}, timeout=self.timeout)
            resp.raise_for_status()
            teams = (resp.json() or {}).get('teams') or []
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Club logo lookup failed for {api_name!r}: {e}")
            return None

        if not teams:
            return None
        return teams[0].get('strBadge') or None

    def _store(self, key: str, url: str, cached: Optional[ClubLogo], now: datetime):
        session = self.session
        if cached is None:
            cached = ClubLogo(club_name=key)
            session.add(cached)
        cached.url = url
        cached.source = 'thesportsdb'
        cached.updated_at = now
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to cache logo for {key!r}: {e}")
            raise UpstreamError(str(e))
