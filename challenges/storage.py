from __future__ import annotations

from datetime import datetime

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .models import MonthlyChallenge, RegisteredUser, TiebreakerBoard


class ChallengeStorage:
    def __init__(self, table) -> None:
        self._table = table

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("Challenge table is not configured")

    def _query_prefix(self, pk_value: str, sk_prefix: str) -> list[dict[str, object]]:
        kwargs: dict[str, object] = {
            "KeyConditionExpression": Key("pk").eq(pk_value)
            & Key("sk").begins_with(sk_prefix),
            "Select": "ALL_ATTRIBUTES",
        }
        items: list[dict[str, object]] = []
        while True:
            resp = self._table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return items

    def _delete(self, key: dict[str, str]) -> bool:
        try:
            self._table.delete_item(
                Key=key,
                ConditionExpression="attribute_exists(pk)",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                return False
            raise
        return True

    # ----- Monthly challenges -----
    def get_challenge(self, month: str) -> MonthlyChallenge | None:
        self.ensure_table()
        resp = self._table.get_item(Key=MonthlyChallenge.key(month))
        item = resp.get("Item")
        if not item:
            return None
        return MonthlyChallenge.from_item(item)

    def save_challenge(self, challenge: MonthlyChallenge) -> None:
        self.ensure_table()
        self._table.put_item(Item=challenge.to_item())

    def list_challenges(self, year: int | None = None) -> list[MonthlyChallenge]:
        self.ensure_table()
        prefix = "MONTH#" if year is None else f"MONTH#{year:04d}-"
        items = self._query_prefix(MonthlyChallenge.PK_VALUE, prefix)
        challenges = [MonthlyChallenge.from_item(item) for item in items]
        challenges.sort(key=lambda challenge: challenge.month)
        return challenges

    def delete_challenge(self, month: str) -> bool:
        self.ensure_table()
        return self._delete(MonthlyChallenge.key(month))

    # ----- Registered users -----
    def get_user(self, ra_username: str) -> RegisteredUser | None:
        self.ensure_table()
        resp = self._table.get_item(Key=RegisteredUser.key(ra_username))
        item = resp.get("Item")
        if not item:
            return None
        return RegisteredUser.from_item(item)

    def save_user(self, user: RegisteredUser) -> None:
        self.ensure_table()
        self._table.put_item(Item=user.to_item())

    def list_users(self) -> list[RegisteredUser]:
        self.ensure_table()
        items = self._query_prefix(RegisteredUser.PK_VALUE, "USER#")
        users = [RegisteredUser.from_item(item) for item in items]
        users.sort(key=lambda user: user.ra_username.lower())
        return users

    def delete_user(self, ra_username: str) -> bool:
        self.ensure_table()
        return self._delete(RegisteredUser.key(ra_username))

    # ----- Tiebreaker boards -----
    def save_tiebreaker(self, board: TiebreakerBoard) -> None:
        self.ensure_table()
        self._table.put_item(Item=board.to_item())

    def list_tiebreakers(self) -> list[TiebreakerBoard]:
        self.ensure_table()
        items = self._query_prefix(TiebreakerBoard.PK_VALUE, "BOARD#")
        boards = [TiebreakerBoard.from_item(item) for item in items]
        boards.sort(key=lambda board: (board.starts_at, board.board_id))
        return boards

    def get_active_tiebreaker(self, now: datetime) -> TiebreakerBoard | None:
        active = [board for board in self.list_tiebreakers() if board.is_active(now)]
        if not active:
            return None
        # Latest start wins when windows overlap.
        return active[-1]

    def delete_tiebreaker(self, board_id: str) -> bool:
        self.ensure_table()
        return self._delete(TiebreakerBoard.key(board_id))


__all__ = ["ChallengeStorage"]
