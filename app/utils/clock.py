from datetime import datetime, timezone


def utcnow() -> datetime:
    """ DB 컬럼과 비교하기 위한 naive UTC 현재 시각 """
    return datetime.now(timezone.utc).replace(tzinfo=None)
