# app/core/config.py

import os # 'os' 모듈: 환경 변수를 읽기 위해 사용합니다.

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 외부 인증 제공자가 발급한 토큰을 검증하는 데 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # monthYear 키와 연/월 범위 계산에 사용하는 협회 기준 시간대
    HOA_TIMEZONE = os.getenv('HOA_TIMEZONE', 'Asia/Manila')
    # settings/dues 문서가 없을 때 사용하는 월 회비 기본값
    DEFAULT_MONTHLY_DUES = os.getenv('DEFAULT_MONTHLY_DUES', '30.00')
    # Firestore 트랜잭션 충돌 시 최대 재시도 횟수
    FIRESTORE_TRANSACTION_MAX_ATTEMPTS = int(os.getenv('FIRESTORE_TRANSACTION_MAX_ATTEMPTS', 5))
    # 업로드 파일 최대 크기 (20MB)
    MAX_UPLOAD_BYTES = int(os.getenv('MAX_UPLOAD_BYTES', 20 * 1024 * 1024))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 1024 * 1024

    POST_CATEGORIES = ('announcement', 'news', 'event', 'reminder', 'general')

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')

class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = 'hoa-testing.appspot.com'
    HOA_TIMEZONE = 'UTC'

# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    production=ProductionConfig,
    testing=TestingConfig
)
