# run.py
from dotenv import load_dotenv
import os
from app import create_app
basedir = os.path.abspath(os.path.dirname(__file__))
# 실행 디렉터리와 무관하게 이 파일 옆의 '.env'를 로드합니다.
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 5000))
    debug = app.config.get('DEBUG', False)
    app.run(host=host, port=port, debug=debug)
