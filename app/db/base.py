from sqlalchemy.orm import declarative_base

Base = declarative_base()
import app.models.user
import app.models.token
