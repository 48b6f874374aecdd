import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from library_backend.auth.accounts import LoginRequest, LoginResponse, authenticate, login_response
from library_backend.auth.dependencies import require_student
from library_backend.auth.jwt_handler import Identity
from library_backend.core.errors import InvalidCredentials
from library_backend.database import get_db
from library_backend.models.user import User

router = APIRouter(tags=['student'])

logger = logging.getLogger(__name__)


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    student = authenticate(db, User, data.username, data.password)
    if student.role != 'student':
        logger.info('Login failed: users account %r has role %r', data.username, student.role)
        raise InvalidCredentials()
    logger.info('Student %s logged in', student.id)
    return login_response(student, role='student')


@router.get('/')
def student_root(identity: Identity = Depends(require_student)):
    return {'success': True, 'message': 'Student API route is working!', 'user_id': identity.user_id}
