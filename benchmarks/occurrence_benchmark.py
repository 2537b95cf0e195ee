import time
from datetime import date, datetime
from pathlib import Path

import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fincal.recurring import Frequency, RecurringTransaction, TransactionType
from fincal.services import occurrences_for_month


def build_transactions(n: int) -> list[RecurringTransaction]:
    freqs = list(Frequency)
    txns = []
    for i in range(n):
        txns.append(
            RecurringTransaction(
                id=str(i),
                name=f"T{i}",
                amount=float(i % 50),
                type=TransactionType.EXPENSE if i % 3 else TransactionType.INCOME,
                frequency=freqs[i % len(freqs)],
                start_date=date(2023, 1 + i % 12, 1 + i % 28),
                created_at=datetime(2023, 1, 1),
            )
        )
    return txns


def run():
    txns = build_transactions(500)
    start = time.perf_counter()
    total = 0
    for month in range(12):
        index = occurrences_for_month(txns, 2024, month)
        total += sum(len(v) for v in index.values())
    duration = time.perf_counter() - start
    print(f"Resolved {total} occurrences over 12 months in {duration:.4f}s")


if __name__ == "__main__":
    run()
