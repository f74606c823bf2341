import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from api.models import ConsentRecord, RecordId, TipRecord
from lib.error_handler import StoreError

logger = logging.getLogger(__name__)

def _execute(query, action: str):
    """Run a Supabase query builder, turning client failures into StoreError"""
    try:
        result = query.execute()
    except Exception as e:
        logger.error(f"Failed to {action}: {str(e)}")
        raise StoreError(f"Failed to {action}: {str(e)}") from e
    if hasattr(result, 'error') and result.error:
        logger.error(f"Supabase error while trying to {action}: {result.error}")
        raise StoreError(f"Supabase error: {result.error}")
    return result.data or []

class ConsentStore:
    """Who has agreed to receive push notifications for which intent.

    Rows are never deduplicated: a user who opts in twice has two rows.
    """

    def __init__(self, supabase_client, table: str = 'users'):
        self.supabase = supabase_client
        self.table = table
        logger.info(f"Consent store initialized on table: {table}")

    async def add(self, record: ConsentRecord) -> Optional[RecordId]:
        data = record.to_row()
        logger.info(f"Storing consent: {data}")
        rows = _execute(self.supabase.table(self.table).insert(data), 'store consent')
        return rows[0].get('id') if rows else None

    async def find_by_intent(self, intent: str) -> List[ConsentRecord]:
        rows = _execute(
            self.supabase.table(self.table).select('*').eq('intent', intent),
            f"query consents for {intent}"
        )
        records = []
        for row in rows:
            try:
                records.append(ConsentRecord.model_validate(row))
            except ValidationError as e:
                # Malformed rows are skipped; the remaining recipients still get their push
                logger.error(f"Skipping unreadable consent row {row.get('id')}: {str(e)}")
        return records

class TipStore:
    def __init__(self, supabase_client, table: str = 'tips'):
        self.supabase = supabase_client
        self.table = table

    async def find(self, category: Optional[str] = None) -> List[TipRecord]:
        """All tips, or only those whose category matches exactly"""
        query = self.supabase.table(self.table).select('*')
        if category is not None:
            query = query.eq('category', category)
        rows = _execute(query, 'query tips')
        return [TipRecord.model_validate(row) for row in rows]

    async def latest(self) -> Optional[TipRecord]:
        rows = _execute(
            self.supabase.table(self.table).select('*').order('created_at', desc=True).limit(1),
            'query latest tip'
        )
        return TipRecord.model_validate(rows[0]) if rows else None

    async def categories(self) -> List[str]:
        """Distinct categories in first-seen order"""
        rows = _execute(self.supabase.table(self.table).select('category'), 'query categories')
        seen: List[str] = []
        for row in rows:
            category = row.get('category')
            if category and category not in seen:
                seen.append(category)
        return seen

    async def delete_all(self) -> int:
        rows = _execute(self.supabase.table(self.table).select('id'), 'list tips')
        ids = [row['id'] for row in rows]
        if not ids:
            return 0
        _execute(self.supabase.table(self.table).delete().in_('id', ids), 'delete tips')
        logger.info(f"Deleted {len(ids)} tips")
        return len(ids)

    async def insert_many(self, tips: List[Dict[str, Any]]) -> int:
        if not tips:
            return 0
        rows = _execute(self.supabase.table(self.table).insert(tips), 'insert tips')
        logger.info(f"Inserted {len(tips)} tips")
        return len(rows) or len(tips)
