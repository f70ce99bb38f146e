"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- auth: 가입 / 로그인
- dashboard: 대시보드, 계좌 잔고, 저장 용량
- transactions: 장부 기록 / 수정 / 삭제 / 복원 / 이력 / 영수증
- fiscal_years: 회계연도 관리, 결산
- categories: 카테고리 관리
- proposals: 회계연도 삭제 제안 / 투표
- members: 회원, 초대 코드
- admin: 서비스 키 보호 관리자 엔드포인트
"""
