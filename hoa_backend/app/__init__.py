# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정 / 공통 예외
from app.core.config import config_by_name
from app.core.errors import HoaError

# - API 블루프린트
from app.api.contributions.routes import contributions_bp
from app.api.expenses.routes import expenses_bp
from app.api.dashboard.routes import dashboard_bp
from app.api.posts.routes import posts_bp
from app.api.comments.routes import comments_bp

# - 서비스 모듈
from app.services.firestore_service import FirestoreStore
from app.services.storage_service import StorageService
from app.services.identity_service import IdentityService
from app.services.migration_service import MigrationService
from app.api.contributions.services import ContributionService
from app.api.expenses.services import ExpenseService
from app.api.dashboard.services import DashboardService
from app.api.posts.services import PostService
from app.api.comments.services import CommentService


def _init_firebase(app: Flask) -> None:
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def create_app(config_name=None, store=None, bucket=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'production' / 'testing' (기본값: FLASK_ENV)
    :param store: 문서 저장소. 주입하지 않으면 Firestore 클라이언트를 사용합니다.
    :param bucket: Storage 버킷. 주입하지 않으면 Firebase 기본 버킷을 사용합니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if store is None or bucket is None:
        _init_firebase(app)
    if store is None:
        store = FirestoreStore(max_attempts=app.config['FIRESTORE_TRANSACTION_MAX_ATTEMPTS'])

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 다른 서비스의 기반이 되는 공용/핵심 서비스 먼저 생성
    try:
        storage_instance = StorageService(bucket=bucket)
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    app.services['identity'] = IdentityService(store)
    timezone_name = app.config['HOA_TIMEZONE']

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    # - 원장 도메인
    app.services['contributions'] = ContributionService(
        store,
        storage_service=app.services['storage'],
        timezone_name=timezone_name,
        default_monthly_dues=app.config['DEFAULT_MONTHLY_DUES'],
    )
    app.services['expenses'] = ExpenseService(
        store,
        storage_service=app.services['storage'],
        timezone_name=timezone_name,
    )
    app.services['dashboard'] = DashboardService(
        contribution_service=app.services['contributions'],
        expense_service=app.services['expenses'],
    )

    # - 게시판 도메인
    app.services['posts'] = PostService(
        store,
        storage_service=app.services['storage'],
        identity_service=app.services['identity'],
        categories=app.config['POST_CATEGORIES'],
    )
    app.services['comments'] = CommentService(store, identity_service=app.services['identity'])

    app.services['migration'] = MigrationService(store, timezone_name=timezone_name)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(contributions_bp, url_prefix='/api/contributions')
    app.register_blueprint(expenses_bp, url_prefix='/api/expenses')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(comments_bp, url_prefix='/api/posts')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(HoaError)
    def handle_hoa_error(err):
        if err.status_code >= 500:
            logging.error(f"[{err.error_code}] {err.message}", exc_info=True)
        else:
            logging.warning(f"[{err.error_code}] {err.message}")
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "message": "요청 값이 올바르지 않습니다.", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        response = {"error_code": (err.name or "HTTP_ERROR").upper().replace(' ', '_'), "message": err.description}
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
