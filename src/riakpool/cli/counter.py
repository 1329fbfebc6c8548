"""riakc incr: read-modify-write counter increment."""

from __future__ import annotations

import typer

from riakpool.cli.objects import _run
from riakpool.errors import IntegrityError
from riakpool.values import Absent, Document, Mutation, StoredValue


def incr_cmd(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    field: str = typer.Option("counter", "--field", help="Counter field in the stored document"),
    by: int = typer.Option(1, "--by", help="Increment"),
) -> None:
    """Increment a numeric field of a JSON document, creating it if missing."""

    def mutator(current: StoredValue) -> Mutation:
        if isinstance(current, Document):
            doc = current.unwrap()
        elif isinstance(current, Absent):
            doc = {}
        else:
            raise IntegrityError(f"{bucket}/{key} does not hold a JSON object")
        doc[field] = int(doc.get(field) or 0) + by
        return Mutation(doc)

    _run(lambda client: client.modify(bucket, key, mutator))
