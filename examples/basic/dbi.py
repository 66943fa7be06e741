from typing import List, Optional, Tuple

from bindsql import execute, query, query_one


class DataRepository:

    @execute(
        "CREATE TABLE IF NOT EXISTS data ( "
        "  name VARCHAR(256) PRIMARY KEY, "
        "  value INTEGER DEFAULT 0"
        ")"
    )
    def make_table(self):
        pass

    @execute(
        "INSERT INTO data (name, value) VALUES(?, ?) "
        "ON CONFLICT (name) DO UPDATE SET value = excluded.value"
    )
    def upsert(self, name: str, value: int) -> Tuple[int, int, Optional[Exception]]:
        pass

    @query("SELECT name, value FROM data WHERE data.name LIKE ? ORDER BY data.name LIMIT ? OFFSET ?")
    def search(self, search_term: str, limit: int, offset: int) -> List[dict]:
        pass

    @query_one("SELECT sum(value) FROM data WHERE data.name LIKE ?")
    def sum_for(self, search_term: str) -> int:
        pass


def populate(db, repo: DataRepository):
    repo.make_table()
    with db.begin() as tx:
        repo.upsert(tx, "testing", 52)
        repo.upsert(tx, "test", 39)
        repo.upsert(tx, "other_thing", 20)
        repo.upsert(tx, "test", 50)
