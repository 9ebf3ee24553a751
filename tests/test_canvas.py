from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.canvas import (
    BLACK,
    MAX_HISTORY,
    WHITE,
    DrawingCanvas,
    PointerEvent,
    Rect,
    Stroke,
    canvas_coordinates,
    strokes_from_canvas_json,
)
from studio.imaging import data_url_to_image


def draw_line(canvas, start=(10, 10), end=(60, 10)):
    canvas.start_stroke(*start)
    canvas.move_to(*end)
    canvas.end_stroke()


def test_new_canvas_is_white_with_one_history_entry():
    canvas = DrawingCanvas(100, 50)
    assert canvas.size == (100, 50)
    assert canvas.image.getpixel((0, 0)) == WHITE
    assert len(canvas.history) == 1
    assert not canvas.can_undo and not canvas.can_redo


def test_invalid_size_raises():
    with pytest.raises(ValueError):
        DrawingCanvas(0, 10)


def test_pen_stroke_draws_black_and_records_history():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    assert canvas.image.getpixel((35, 10)) == BLACK
    assert canvas.step == 1
    assert canvas.can_undo


def test_eraser_paints_white():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    canvas.tool = "eraser"
    canvas.line_width = 10
    draw_line(canvas)
    assert canvas.image.getpixel((35, 10)) == WHITE


def test_unknown_tool_and_width_clamping():
    canvas = DrawingCanvas(100, 50)
    with pytest.raises(ValueError):
        canvas.tool = "spray"
    canvas.line_width = 99
    assert canvas.line_width == 20
    canvas.line_width = 0
    assert canvas.line_width == 1


def test_move_without_stroke_does_nothing():
    canvas = DrawingCanvas(100, 50)
    canvas.move_to(20, 20)
    canvas.end_stroke()
    assert canvas.image.getpixel((20, 20)) == WHITE
    assert len(canvas.history) == 1


def test_undo_and_redo_restore_snapshots():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)

    assert canvas.undo() is True
    assert canvas.image.getpixel((35, 10)) == WHITE
    assert canvas.can_redo

    assert canvas.redo() is True
    assert canvas.image.getpixel((35, 10)) == BLACK
    assert canvas.redo() is False


def test_new_stroke_after_undo_discards_redo_branch():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    canvas.undo()
    draw_line(canvas, (10, 40), (60, 40))

    assert not canvas.can_redo
    assert len(canvas.history) == 2
    assert canvas.image.getpixel((35, 10)) == WHITE


def test_history_is_bounded():
    canvas = DrawingCanvas(100, 50)
    for i in range(MAX_HISTORY + 5):
        draw_line(canvas, (1, i + 1), (2, i + 1))
    assert len(canvas.history) == MAX_HISTORY
    assert canvas.step == MAX_HISTORY - 1

    undone = 0
    while canvas.undo():
        undone += 1
    assert undone == MAX_HISTORY - 1


def test_clear_is_undoable():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    canvas.clear()
    assert canvas.image.getpixel((35, 10)) == WHITE
    canvas.undo()
    assert canvas.image.getpixel((35, 10)) == BLACK


def test_resize_keeps_content_at_origin():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    canvas.resize(200, 100)
    assert canvas.size == (200, 100)
    assert canvas.image.getpixel((35, 10)) == BLACK
    assert canvas.image.getpixel((150, 80)) == WHITE
    assert len(canvas.history) == 2


def test_undo_after_resize_keeps_new_size():
    canvas = DrawingCanvas(100, 50)
    draw_line(canvas)
    canvas.resize(200, 100)
    canvas.undo()
    assert canvas.size == (200, 100)


@pytest.mark.parametrize("key, ctrl, meta, shift, expected", [
    ("z", True, False, False, "undo"),
    ("Z", False, True, True, "redo"),
    ("y", True, False, False, "redo"),
    ("z", False, False, False, None),
    ("x", True, False, False, None),
])
def test_handle_key_shortcuts(key, ctrl, meta, shift, expected):
    canvas = DrawingCanvas(100, 50)
    assert canvas.handle_key(key, ctrl=ctrl, meta=meta, shift=shift) == expected


def test_pointer_events_use_bounding_rect_and_first_touch():
    rect = Rect(left=100, top=50)
    assert canvas_coordinates(PointerEvent(130, 70), rect) == (30, 20)
    assert canvas_coordinates(PointerEvent(touches=[(110, 60), (500, 500)]), rect) == (10, 10)

    canvas = DrawingCanvas(100, 50)
    canvas.pointer_down(PointerEvent(110, 60), rect)
    canvas.pointer_move(PointerEvent(160, 60), rect)
    canvas.pointer_up()
    assert canvas.image.getpixel((35, 10)) == BLACK
    assert canvas.step == 1


def test_replay_restores_current_tool_settings():
    canvas = DrawingCanvas(100, 50)
    canvas.line_width = 7
    canvas.replay(Stroke(points=[(10, 10), (60, 10)], tool="eraser", width=2))
    assert canvas.tool == "pen"
    assert canvas.line_width == 7
    assert canvas.step == 1


def test_snapshot_is_png_data_url():
    canvas = DrawingCanvas(40, 20)
    url = canvas.snapshot()
    assert url.startswith("data:image/png;base64,")
    assert data_url_to_image(url).size == (40, 20)


def test_strokes_from_canvas_json():
    json_data = {"objects": [
        {"type": "path", "stroke": "#000000", "strokeWidth": 5,
         "path": [["M", 1, 2], ["Q", 3, 4, 5, 6], ["L", 7, 8]]},
        {"type": "path", "stroke": "#FFFFFF", "strokeWidth": 12, "path": [["M", 0, 0], ["L", 9, 9]]},
        {"type": "rect"},
        {"type": "path", "path": []},
    ]}
    strokes = strokes_from_canvas_json(json_data)
    assert len(strokes) == 2
    assert strokes[0].points == [(1.0, 2.0), (5.0, 6.0), (7.0, 8.0)]
    assert strokes[0].tool == "pen" and strokes[0].width == 5
    assert strokes[1].tool == "eraser"
    assert strokes_from_canvas_json(None) == []
