from tuning_lab.modules.sql.splitter import command_units, is_pure_comment, split_statements, strip_comments


def test_semicolon_inside_literal_is_not_a_terminator():
    assert split_statements("SELECT ';' FROM t; SELECT 2;") == ["SELECT ';' FROM t", "SELECT 2"]


def test_doubled_quote_does_not_close_literal():
    sql = "SELECT 'it''s; fine' FROM dual; SELECT 2 FROM dual"
    assert split_statements(sql) == ["SELECT 'it''s; fine' FROM dual", "SELECT 2 FROM dual"]


def test_trailing_fragment_without_terminator_is_kept():
    assert split_statements("SELECT 1 FROM dual;\nSELECT 2 FROM dual") == ["SELECT 1 FROM dual", "SELECT 2 FROM dual"]


def test_empty_fragments_are_dropped():
    assert split_statements(";;  SELECT 1 FROM dual ;; ;") == ["SELECT 1 FROM dual"]
    assert split_statements("") == []
    assert split_statements("   \n ") == []


def test_unterminated_literal_swallows_rest_of_script():
    assert split_statements("SELECT 'abc; SELECT 2") == ["SELECT 'abc; SELECT 2"]


def test_line_comment_terminator_does_not_split():
    sql = "SELECT 1 FROM dual -- a; b\n; SELECT 2"
    assert split_statements(sql) == ["SELECT 1 FROM dual -- a; b", "SELECT 2"]


def test_block_comment_terminator_does_not_split():
    sql = "SELECT /* ; */ 1 FROM dual; SELECT 2"
    assert split_statements(sql) == ["SELECT /* ; */ 1 FROM dual", "SELECT 2"]


def test_comment_markers_inside_literal_are_text():
    assert split_statements("SELECT '--;' FROM dual; SELECT '/*' FROM dual") == [
        "SELECT '--;' FROM dual",
        "SELECT '/*' FROM dual",
    ]


def test_strip_comments_keeps_literals():
    assert " ".join(strip_comments("SELECT 1 -- note\nFROM dual /* x */").split()) == "SELECT 1 FROM dual"
    assert strip_comments("SELECT '--x' FROM dual") == "SELECT '--x' FROM dual"


def test_is_pure_comment():
    assert is_pure_comment("-- a\n/* b */")
    assert is_pure_comment("  ")
    assert not is_pure_comment("-- a\nSELECT 1 FROM dual")


def test_command_units_follow_sqlplus_line_rules():
    script = "SET TIMING ON\nSELECT *\n  FROM t\n/\nSPOOL out.txt\n\nSELECT 2 FROM dual"
    assert command_units(script) == ["SET TIMING ON", "SELECT *\n  FROM t", "SPOOL out.txt", "SELECT 2 FROM dual"]


def test_command_units_split_sql_at_command_lines():
    assert command_units("SELECT 1 FROM dual\nEXEC p") == ["SELECT 1 FROM dual", "EXEC p"]
    # 层级查询子句不是命令
    hier = "SELECT id FROM t\nSTART WITH pai IS NULL\nCONNECT BY PRIOR id = pai"
    assert command_units(hier) == [hier]


def test_command_units_honour_line_continuation():
    assert command_units("SET TIMING -\nON\nSELECT 1 FROM dual") == ["SET TIMING -\nON", "SELECT 1 FROM dual"]
