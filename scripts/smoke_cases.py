SMOKE_CASES = [
    # ==========================
    # 🟢 允许的查询
    # ==========================
    {
        "sql": "SELECT 1 AS X FROM DUAL;",
        "expected_status": 200,
        "type": "查询",
    },
    {
        "sql": "SELECT COUNT(*) FROM clientes;",
        "expected_status": 200,
        "type": "查询",
    },
    {
        "sql": "EXPLAIN PLAN FOR SELECT * FROM clientes WHERE cidade = 'Recife';\n"
               "SELECT * FROM TABLE(DBMS_XPLAN.DISPLAY);",
        "expected_status": 200,
        "type": "执行计划",
    },
    {
        "sql": "ALTER SESSION SET STATISTICS_LEVEL = ALL;",
        "expected_status": 200,
        "type": "会话设置",
    },
    # ==========================
    # 🔴 必须拦截
    # ==========================
    {
        "sql": "DROP TABLE clientes;",
        "expected_status": 403,
        "type": "拦截-DDL",
    },
    {
        "sql": "DELETE FROM clientes WHERE id = 1;",
        "expected_status": 403,
        "type": "拦截-DML",
    },
    {
        "sql": "HOST ls -la",
        "expected_status": 403,
        "type": "拦截-宿主机",
    },
    {
        "sql": "ALTER SYSTEM FLUSH SHARED_POOL;",
        "expected_status": 403,
        "type": "拦截-系统",
    },
    {
        "sql": "BEGIN NULL; END;",
        "expected_status": 403,
        "type": "拦截-白名单外",
    },
    # ==========================
    # ⚪ 输入校验
    # ==========================
    {
        "sql": "   ",
        "expected_status": 400,
        "type": "输入",
    },
]
