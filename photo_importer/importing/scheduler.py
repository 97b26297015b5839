import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, Tuple

from ..models import ImportOutcome, ImportUnit

class ImportScheduler:
    """
    Runs import units through a fixed-size thread pool.

    Units are submitted in input order; at most `concurrency` run at once.
    No retries and no cancellation: every submitted unit runs to completion.
    """
    def __init__(self, run_unit: Callable[[ImportUnit], ImportOutcome], concurrency: int):
        if concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {concurrency}")
        self.run_unit = run_unit
        self.concurrency = concurrency

    def run(self, units: Sequence[ImportUnit]) -> List[Tuple[ImportUnit, ImportOutcome]]:
        """Blocks until every unit is done; results are in completion order."""
        if not units:
            return []

        logging.info(f"Importing {len(units)} units with {self.concurrency} workers")
        results: List[Tuple[ImportUnit, ImportOutcome]] = []

        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="import") as executor:
            future_to_unit = {executor.submit(self.run_unit, unit): unit for unit in units}

            for future in as_completed(future_to_unit):
                unit = future_to_unit[future]
                try:
                    results.append((unit, future.result()))
                except Exception as e:
                    # The pipeline contains its own failures; this is a bug escaping it
                    logging.error(f"Import worker crashed on {unit.path}: {e}")
                    results.append((unit, ImportOutcome.FAILED))

        return results
