# app/services/firestore_service.py
import logging
from typing import Any, Callable, TypeVar

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from app.core.errors import HoaError, TransactionConflictError

T = TypeVar('T')

# google-cloud-firestore가 재시도 횟수를 모두 소진했을 때 던지는 ValueError 메시지 접두어
_EXHAUSTED_ATTEMPTS_PREFIX = "Failed to commit transaction"

# 하나의 WriteBatch에 담을 수 있는 최대 쓰기 수
BATCH_LIMIT = 500


class FirestoreStore:
    """
    Firestore 클라이언트를 감싸는 문서 저장소.
    - 서비스들은 firestore.client()를 직접 호출하지 않고 이 객체를 주입받습니다.
    - 트랜잭션은 run_transaction을 통해서만 실행되며, 충돌 시 자동 재시도됩니다.
    """

    def __init__(self, client=None, max_attempts: int = 5):
        self.client = client or firestore.client()
        self.max_attempts = max_attempts

    def collection(self, path: str):
        return self.client.collection(path)

    def batch(self):
        return self.client.batch()

    def run_transaction(self, callback: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        callback(transaction, *args, **kwargs)를 하나의 트랜잭션 안에서 실행합니다.
        쓰기 충돌이 발생하면 callback 전체가 다시 실행되므로, callback은 트랜잭션 안에서
        읽은 값에만 의존해야 합니다.
        """
        transaction = self.client.transaction(max_attempts=self.max_attempts)
        try:
            return firestore.transactional(callback)(transaction, *args, **kwargs)
        except HoaError:
            raise
        except google_exceptions.Aborted as e:
            logging.warning(f"트랜잭션 충돌로 커밋 실패 ({callback.__name__}): {e}")
            raise TransactionConflictError("동시 수정으로 인해 요청을 처리하지 못했습니다. 다시 시도해 주세요.") from e
        except ValueError as e:
            if str(e).startswith(_EXHAUSTED_ATTEMPTS_PREFIX):
                logging.warning(f"트랜잭션 재시도 소진 ({callback.__name__}, {self.max_attempts}회): {e}")
                raise TransactionConflictError(
                    "동시 수정으로 인해 요청을 처리하지 못했습니다. 다시 시도해 주세요.",
                    details={"attempts": self.max_attempts},
                ) from e
            raise


def commit_in_batches(store, operations, limit: int = BATCH_LIMIT) -> int:
    """
    (op, ref[, data]) 목록을 WriteBatch 제한에 맞춰 나눠 커밋합니다.
    op는 'delete' 또는 'update'입니다. 커밋한 쓰기 수를 반환합니다.
    """
    committed = 0
    for start in range(0, len(operations), limit):
        batch = store.batch()
        chunk = operations[start:start + limit]
        for operation in chunk:
            op, ref = operation[0], operation[1]
            if op == 'delete':
                batch.delete(ref)
            elif op == 'update':
                batch.update(ref, operation[2])
            else:
                raise ValueError(f"지원하지 않는 배치 연산입니다: {op}")
        batch.commit()
        committed += len(chunk)
    return committed
