"""Prospect records: the fields research reads and the slots it writes back."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any

from prospect_research.db.database import Database
from prospect_research.models import BackendName, PlaceRecord, Prospect, ResearchAggregate

_RESEARCH_COLUMNS = {
    BackendName.PLAYWRIGHT: "playwright_research_json",
    BackendName.APIFY: "apify_research_json",
}


class ProspectRepository:
    def __init__(self, db: Database):
        self.db = db

    def get(self, prospect_id: str) -> Prospect | None:
        row = self.db.fetchone("SELECT * FROM prospects WHERE id = ?", (prospect_id,))
        if not row:
            return None
        return Prospect(
            id=row["id"],
            name=row["name"],
            company=row["company"],
            linkedin_url=row["linkedin_url"],
            website=row["website"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
            source=row["source"],
        )

    def create(self, prospect: Prospect) -> Prospect:
        now = datetime.now().isoformat()
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO prospects (id, name, company, linkedin_url, website, email, phone, "
                "address, source, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    prospect.id, prospect.name, prospect.company, prospect.linkedin_url,
                    prospect.website, prospect.email, prospect.phone, prospect.address,
                    prospect.source, now, now,
                ),
            )
        return prospect

    def create_from_place(self, place: PlaceRecord) -> Prospect:
        return self.create(Prospect(
            id=f"prospect_{uuid.uuid4().hex[:12]}",
            company=place.company or place.name,
            website=place.website,
            linkedin_url=place.social_media.linkedin or "",
            email=place.email,
            phone=place.phone,
            address=place.address,
            source=place.source,
        ))

    def save_research(self, prospect_id: str, aggregate: ResearchAggregate) -> dict[str, Any]:
        """Overwrite the stored aggregate for the aggregate's backend."""
        stored = {**aggregate.to_api(), "updatedAt": datetime.now().isoformat()}
        column = _RESEARCH_COLUMNS[aggregate.source]
        with self.db.transaction() as conn:
            conn.execute(
                f"UPDATE prospects SET {column} = ?, updated_at = ? WHERE id = ?",
                (json.dumps(stored), stored["updatedAt"], prospect_id),
            )
        return stored

    def get_research(self, prospect_id: str) -> dict[str, Any] | None:
        row = self.db.fetchone(
            "SELECT playwright_research_json, apify_research_json FROM prospects WHERE id = ?",
            (prospect_id,),
        )
        if not row:
            return None
        return {
            "playwrightData": _loads(row["playwright_research_json"]),
            "apifyData": _loads(row["apify_research_json"]),
        }


def _loads(raw: str | None) -> dict | None:
    return json.loads(raw) if raw else None
