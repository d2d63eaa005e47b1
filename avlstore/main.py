import argparse
import logging
import os
import tempfile
import time

from avlstore.config import DEFAULT_CSV_PATH, DEFAULT_DATA_PATH, LOGGING_CONFIG
from avlstore.indexing import AVLTree
from avlstore.storage import RecordDB

logger = logging.getLogger(__name__)


def run_ingest_and_smoke_test(csv_path: str, data_path: str = "") -> None:
    print("--- avlstore ingest + smoke test ---")
    if not data_path:
        data_path = os.path.join(tempfile.mkdtemp(prefix="avlstore-"), "records.dat")
    db = RecordDB(data_path)

    start_time = time.time()
    db.ingest_csv(csv_path)
    end_time = time.time()

    print(f"Ingested {len(db)} records in {end_time - start_time:.2f}s into {data_path}")

    keys = list(db.keys())
    if not keys:
        print("No records loaded.")
        return

    mid_key = keys[len(keys) // 2]
    record = db.get_record_by_key(mid_key)
    print(f"Sample GET at {mid_key}: {record}")
    print(f"Index height: {db.key_index.height()} for {len(keys)} distinct keys")


def interactive_shell() -> None:
    """Read 'i n' / 'r n' / 'p' / 'e' commands and apply them to an int tree."""
    t = AVLTree()

    while True:
        print("op num | e")
        try:
            line = input().split()
        except EOFError:
            return
        if not line:
            continue

        op = line[0]
        if op == 'e':
            return
        if op == 'p':
            print(" ".join(str(v) for v in t))
        elif op in ('i', 'r') and len(line) == 2:
            try:
                num = int(line[1])
            except ValueError:
                print("type in a valid number")
                continue
            if op == 'i':
                t.insert(num)
            elif not t.remove(num):
                print(f"{num} not found")
        else:
            print("type in a valid operation")
        print(t)
        print(f"height: {t.height()}")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="avlstore", description="AVL-indexed record store")
    parser.add_argument("csv", nargs="?", default=DEFAULT_CSV_PATH, help="CSV file with key,value rows")
    parser.add_argument("--data", default=DEFAULT_DATA_PATH, help="record file to write (default: temp file)")
    parser.add_argument("--shell", action="store_true", help="run the interactive tree shell")
    args = parser.parse_args(argv)

    logging.basicConfig(**LOGGING_CONFIG)
    if args.shell:
        interactive_shell()
    else:
        run_ingest_and_smoke_test(args.csv, args.data)


if __name__ == "__main__":
    main()
