import threading
from typing import Dict, List, Optional, Type

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from app.models.token import RefreshToken


class Repository:
    """ 단일 엔티티 타입에 대한 기본 조회/저장 """

    def __init__(self, session: Session, model: Type):
        self.session = session
        self.model = model

    def add(self, record):
        self.session.add(record)
        return record

    def update(self, record):
        # 세션에 이미 붙어있는 객체라면 변경 추적만으로 충분
        self.session.add(record)
        return record

    def find_one(self, *criteria):
        return self.session.scalars(select(self.model).where(*criteria).limit(1)).first()

    def find(self, *criteria) -> List:
        return list(self.session.scalars(select(self.model).where(*criteria)).all())


class RefreshTokenRepository(Repository):

    def __init__(self, session: Session, model: Type = RefreshToken):
        super().__init__(session, model)

    def find_one_by_token(self, token: str) -> Optional[RefreshToken]:
        return self.find_one(RefreshToken.token == token)

    def claim(self, record: RefreshToken) -> bool:
        """
        아직 폐기되지 않은 토큰을 조건부 UPDATE로 폐기 처리한다.
        동시에 같은 토큰을 사용한 요청 중 정확히 하나만 True를 받는다.
        """
        result = self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(record, "is_revoked", True)
        return True


_REPOSITORY_TYPES: Dict[Type, Type[Repository]] = {
    RefreshToken: RefreshTokenRepository,
}


class UnitOfWork:
    """
    요청 단위 세션을 감싸는 작업 단위.
    엔티티 타입별 repository를 한 번만 만들어 재사용하고, commit/rollback을 일원화한다.
    """

    def __init__(self, session: Session):
        self.session = session
        self._repositories: Dict[Type, Repository] = {}
        self._lock = threading.Lock()

    def repository(self, model: Type) -> Repository:
        with self._lock:
            repo = self._repositories.get(model)
            if repo is None:
                repo_type = _REPOSITORY_TYPES.get(model, Repository)
                repo = repo_type(self.session, model)
                self._repositories[model] = repo
            return repo

    @property
    def refresh_tokens(self) -> RefreshTokenRepository:
        return self.repository(RefreshToken)

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()
