# services/storage/link_index.py
from typing import List, Optional

from loguru import logger

from models.link_record import LinkRecord
from models.page_document import PageDocument
from models.timestamps import now_ms
from services.capture.link_extractor import hostname_of, same_host_url

from .database import Database


class LinkIndex:
    """
    Persistent ``link url → LinkRecord`` mapping with a lookup by source host.

    The index never holds two records for the same link URL: rediscovery
    updates the existing record in place.
    """

    def __init__(self, db: Database):
        self.db = db

    async def put(self, record: LinkRecord) -> None:
        await self.db.execute(
            "put_link",
            """
            INSERT INTO link_index (url, source_hostname, source_url, discovered_at, last_seen, record)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(url) DO UPDATE SET
                source_hostname = excluded.source_hostname,
                source_url = excluded.source_url,
                discovered_at = excluded.discovered_at,
                last_seen = excluded.last_seen,
                record = excluded.record
            """,
            (
                record.url,
                record.source_hostname,
                record.source_url,
                record.discovered_at,
                record.last_seen,
                record.model_dump_json(by_alias=True),
            ),
        )

    async def get(self, url: str) -> Optional[LinkRecord]:
        row = await self.db.fetch_one("get_link", "SELECT record FROM link_index WHERE url = ?", (url,))
        if row is None:
            return None
        return LinkRecord.model_validate_json(row[0])

    async def get_all(self) -> List[LinkRecord]:
        rows = await self.db.fetch_all("get_all_links", "SELECT record FROM link_index")
        return [LinkRecord.model_validate_json(row[0]) for row in rows]

    async def get_by_source_hostname(self, hostname: str) -> List[LinkRecord]:
        rows = await self.db.fetch_all(
            "get_links_by_hostname",
            "SELECT record FROM link_index WHERE source_hostname = ? ORDER BY discovered_at",
            (hostname,),
        )
        return [LinkRecord.model_validate_json(row[0]) for row in rows]

    async def count(self) -> int:
        row = await self.db.fetch_one("count_links", "SELECT COUNT(*) FROM link_index")
        return row[0] if row else 0

    async def ingest(self, page: PageDocument) -> int:
        """
        Index the same‑host links of *page*.

        New link URLs get a fresh record sourced from the page; known ones
        get ``page.url`` added to their sources.  Returns the number of new
        records.
        """
        if not page.links:
            logger.debug(f"No links to index for {page.url}")
            return 0

        base_hostname = page.hostname or hostname_of(page.url)
        created = 0
        for link in page.links:
            target = same_host_url(link.url, page.url)
            if target is None:
                continue

            seen_at = now_ms()
            existing = await self.get(target)
            if existing is not None:
                existing.add_source(page.url, seen_at=seen_at)
                await self.put(existing)
                continue

            await self.put(
                LinkRecord(
                    url=target,
                    text=link.text,
                    title=link.title,
                    rel=link.rel,
                    type=link.type,
                    relevance=link.relevance,
                    source_url=page.url,
                    source_hostname=base_hostname,
                    discovered_at=seen_at,
                    last_seen=seen_at,
                    source_urls=[page.url],
                )
            )
            created += 1

        if created:
            logger.info(f"Indexed {created} new links for {base_hostname} from {page.url}")
        return created
