"""
API 層

FastAPI routers，只負責 request/response 轉換和錯誤碼對應：
- sessions：球局生命週期、排名
- players：參賽名單、身份遷移
- scores：成績紀錄
- rewards：獎勵清單、兌換
"""
