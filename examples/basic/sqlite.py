import logging

import dbi
from bindsql import bind
from bindsql.backend import create_database
from bindsql.context import with_timeout

if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG)
    con_url = "sqlite3:///tmp/example.db?timeout=2.5"
    db = create_database(con_url)
    repo = dbi.DataRepository()
    with with_timeout(10) as ctx:
        bind(ctx, db, repo, last_insert_id_support=True)
        dbi.populate(db, repo)
        for row in repo.search("test%", 10, 0):
            print(f"{row['name']}: {row['value']}")
        print(f"Sum: {repo.sum_for('test%')}")
    db.dispose()
