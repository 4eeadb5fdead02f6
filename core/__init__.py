"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理 Session 的狀態轉換
- Manager / Ledger：Session 生命週期、成績、獎勵兌換
- Identity：玩家身份（永久帳號 / 訪客）
- Locks：並發控制工具
"""
