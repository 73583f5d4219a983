from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from challenges import ChallengeStorage


class FakeTable:
    def __init__(self, page_size: int | None = None) -> None:
        self.items: dict[tuple[str, str], dict[str, object]] = {}
        self.page_size = page_size
        self.query_calls: list[dict[str, object]] = []

    def get_item(self, *, Key):
        return {"Item": self.items.get((Key["pk"], Key["sk"]))}

    def put_item(self, *, Item):
        self.items[(Item["pk"], Item["sk"])] = Item

    def query(self, *, KeyConditionExpression, Select="COUNT", ExclusiveStartKey=None, **_kwargs):
        self.query_calls.append({"ExclusiveStartKey": ExclusiveStartKey})
        pk_value = None
        sk_prefix = ""
        for condition in KeyConditionExpression._values:  # type: ignore[attr-defined]
            key, value = condition._values  # type: ignore[attr-defined]
            if key.name == "pk":  # pragma: no branch - helper
                pk_value = value
            elif key.name == "sk":
                sk_prefix = value
        matching_keys = [
            key
            for key in sorted(self.items)
            if key[0] == pk_value and key[1].startswith(sk_prefix)
        ]
        if ExclusiveStartKey is not None:
            start = (ExclusiveStartKey["pk"], ExclusiveStartKey["sk"])
            matching_keys = [key for key in matching_keys if key > start]
        last_key = None
        if self.page_size is not None and len(matching_keys) > self.page_size:
            matching_keys = matching_keys[: self.page_size]
            last_key = {"pk": matching_keys[-1][0], "sk": matching_keys[-1][1]}
        items = [self.items[key] for key in matching_keys]
        if Select == "COUNT":
            return {"Count": len(items)}
        resp = {"Items": [item.copy() for item in items], "Count": len(items)}
        if last_key is not None:
            resp["LastEvaluatedKey"] = last_key
        return resp

    def delete_item(self, *, Key, ConditionExpression):
        del ConditionExpression  # pragma: no cover - unused in fake implementation
        item_key = (Key["pk"], Key["sk"])
        if item_key not in self.items:
            raise ClientError(
                {
                    "Error": {
                        "Code": "ConditionalCheckFailedException",
                        "Message": "Item not found",
                    }
                },
                "DeleteItem",
            )
        self.items.pop(item_key)


@pytest.fixture
def fake_table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def storage(fake_table: FakeTable) -> ChallengeStorage:
    return ChallengeStorage(fake_table)
