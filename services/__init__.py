"""
服務層

這個 package 包含純計算與查詢邏輯，不負責狀態轉換：
- ScoringService：桿數加總
- StandingsService：排名
- EligibilityService：獎勵資格判斷
- RewardCatalogService：獎勵清單（唯讀）
- NamingService：收據代碼生成
- HighlightService：成績 highlights
- IdentityService：訪客 -> 正式帳號的身份遷移
- HistoryService：兌換紀錄與贊助商統計
"""
