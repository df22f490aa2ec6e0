"""
Unit tests for the fallback-driven path executor.
"""

import asyncio

import pytest

from tests.unit.mock import FakeHandler, make_format
from transmute.engine import build_engine
from transmute.errors import (
    ConversionCancelledError,
    NoPathFoundError,
    UnresolvedHandlerError,
)
from transmute.executor import attempt_path, convert_files, read_inputs
from transmute.formats import FileData
from transmute.graph import ConversionPath, Vertex
from transmute.settings import settings

SVG = make_format("svg", to=False, mime="image/svg+xml")
PNG = make_format("png", from_=False, mime="image/png")
INTER = make_format("inter")

LOGO = FileData(name="logo.svg", bytes=b"<svg/>")


def direct_handler(**behaviors):
    return FakeHandler(
        "direct",
        [SVG, PNG],
        behaviors={("svg", "png"): behaviors.get("svg_png", "fail")},
    )


def chained_handler(**kwargs):
    return FakeHandler(
        "chained",
        [SVG, INTER, PNG],
        pairs={("svg", "inter"), ("inter", "png")},
        **kwargs,
    )


class TestConvertFiles:
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_falls_back_to_two_hop_path(self):
        direct = direct_handler()
        chained = chained_handler()
        engine = await build_engine([direct, chained])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.path.hops == 2
        assert result.path.describe() == "direct:svg -> chained:inter -> chained:png"
        assert result.files == [
            FileData(name="logo.png", bytes=b"<svg/>|chained:inter|chained:png")
        ]
        assert direct.convert_calls == [("svg", "png")]
        assert chained.convert_calls == [("svg", "inter"), ("inter", "png")]
        assert [attempt.success for attempt in result.attempts] == [False, True]
        assert result.attempts[0].failed_hop == 0

    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_first_working_path_wins(self):
        direct = direct_handler(svg_png=None)
        chained = chained_handler()
        engine = await build_engine([direct, chained])

        result = await engine.convert([LOGO], SVG, PNG, simple=False)

        assert result.path.hops == 1
        assert chained.convert_calls == []
        assert len(result.attempts) == 1

    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_empty_output_fails_the_path(self):
        direct = direct_handler(svg_png="empty")
        chained = chained_handler()
        engine = await build_engine([direct, chained])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.path.hops == 2
        assert "empty" in result.attempts[0].reason

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_missing_output_fails_the_path(self):
        direct = direct_handler(svg_png="none")
        chained = chained_handler()
        engine = await build_engine([direct, chained])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.path.hops == 2
        assert "no output" in result.attempts[0].reason

    @pytest.mark.sanity
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("produced", "reason"),
        [
            ([None], "NoneType"),
            ([b"png-bytes"], "bytes"),
            (b"png", "int"),
        ],
    )
    async def test_malformed_output_fails_the_path(self, produced, reason):
        broken = FakeHandler(
            "broken",
            [SVG, PNG],
            behaviors={("svg", "png"): lambda files, src, dst: produced},
        )
        good = FakeHandler("good", [SVG, PNG])
        engine = await build_engine([broken, good])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.path.describe() == "broken:svg -> good:png"
        assert not result.attempts[0].success
        assert reason in result.attempts[0].reason

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_generator_output_is_materialized(self):
        def produce(files, src, dst):
            return (file.derive(dst.extension, b"png") for file in files)

        handler = FakeHandler("lazy", [SVG, PNG], behaviors={("svg", "png"): produce})
        engine = await build_engine([handler])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.files == [FileData(name="logo.png", bytes=b"png")]

    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_no_path_found(self):
        direct = direct_handler()
        chained = chained_handler(behaviors={("inter", "png"): "fail"})
        engine = await build_engine([direct, chained])

        with pytest.raises(NoPathFoundError) as exc_info:
            await engine.convert([LOGO], SVG, PNG)

        assert str(exc_info.value) == (
            "Could not find a working conversion path from svg to png"
        )
        assert len(exc_info.value.attempts) == 2
        assert not any(attempt.success for attempt in exc_info.value.attempts)
        assert chained.convert_calls == [("svg", "inter"), ("inter", "png")]

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_simple_mode_without_escalation(self):
        settings.engine.escalate_simple_mode = False
        direct = direct_handler()
        chained = chained_handler()
        engine = await build_engine([direct, chained])

        with pytest.raises(NoPathFoundError):
            await engine.convert([LOGO], SVG, PNG)

        assert chained.convert_calls == []

        result = await engine.convert([LOGO], SVG, PNG, simple=False)

        assert result.path.hops == 2

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_failed_prefix_is_not_retried(self):
        inter_first = FakeHandler(
            "inter_first",
            [SVG, INTER],
            behaviors={("svg", "inter"): "fail"},
        )
        png_from_inter = FakeHandler(
            "png_from_inter", [INTER, make_format("jpg"), PNG]
        )
        engine = await build_engine([inter_first, png_from_inter])

        with pytest.raises(NoPathFoundError) as exc_info:
            await engine.convert([LOGO], SVG, PNG, simple=False)

        assert len(exc_info.value.attempts) == 1
        assert inter_first.convert_calls == [("svg", "inter")]
        assert png_from_inter.convert_calls == []

    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_progress_reports(self):
        engine = await build_engine([direct_handler(), chained_handler()])
        reports = []

        await engine.convert(
            [LOGO], SVG, PNG, on_progress=lambda *report: reports.append(report)
        )

        percents = [percent for percent, _ in reports]
        assert percents[:3] == [10, 20, 30]
        assert percents[-1] == 95
        assert reports[-1][1] == "Conversion complete!"
        assert all(0 <= percent <= 100 for percent in percents)
        assert (60.0, "Converting: svg -> inter") in reports
        assert (90.0, "Converting: inter -> png") in reports

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_ignored(self):
        engine = await build_engine([chained_handler()])

        def explode(percent, message):
            raise RuntimeError("display went away")

        result = await engine.convert([LOGO], SVG, PNG, on_progress=explode)

        assert result.path.hops == 2

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_cancel_between_hops(self):
        cancel = asyncio.Event()

        def cancel_after_first(files, from_format, to_format):
            cancel.set()
            return [file.derive(to_format.extension, b"inter") for file in files]

        chained = chained_handler(behaviors={("svg", "inter"): cancel_after_first})
        engine = await build_engine([chained])

        with pytest.raises(ConversionCancelledError):
            await engine.convert([LOGO], SVG, PNG, cancel_event=cancel)

        assert chained.convert_calls == [("svg", "inter")]

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_hop_timeout_fails_the_path(self):
        settings.engine.hop_timeout = 0.01
        slow = FakeHandler("slow", [SVG, PNG], convert_delay=1)
        fast = FakeHandler("fast", [SVG, PNG])
        engine = await build_engine([slow, fast])

        result = await engine.convert([LOGO], SVG, PNG)

        assert result.path.describe() == "slow:svg -> fast:png"
        assert "TimeoutError" in result.attempts[0].reason

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_unsupported_format(self):
        engine = await build_engine([direct_handler()])

        with pytest.raises(UnresolvedHandlerError):
            await engine.convert([LOGO], SVG, make_format("gif"))

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_snapshot_handler_is_initialized_before_converting(self):
        chained = chained_handler()
        engine = await build_engine([chained], {"chained": [SVG, INTER, PNG]})

        assert not chained.ready

        result = await engine.convert([LOGO], SVG, PNG)

        assert chained.ready
        assert chained.load_calls == 1
        assert result.path.hops == 2

    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_concurrent_calls_keep_separate_dead_ends(self):
        direct = direct_handler()
        chained = chained_handler(convert_delay=0.01)
        engine = await build_engine([direct, chained])

        results = await asyncio.gather(
            engine.convert([LOGO], SVG, PNG),
            engine.convert([FileData(name="icon.svg", bytes=b"<g/>")], SVG, PNG),
        )

        assert [result.path.hops for result in results] == [2, 2]
        assert [len(result.attempts) for result in results] == [2, 2]
        assert direct.convert_calls == [("svg", "png"), ("svg", "png")]

    @pytest.mark.sanity
    @pytest.mark.asyncio
    async def test_reads_paths_from_disk(self, tmp_path):
        source = tmp_path / "drawing.svg"
        source.write_bytes(b"<svg/>")
        engine = await build_engine([chained_handler()])

        result = await convert_files([source], SVG, PNG, engine)

        assert result.files[0].name == "drawing.png"
        assert result.files[0].bytes.startswith(b"<svg/>")


@pytest.mark.sanity
@pytest.mark.asyncio
async def test_read_inputs_keeps_order(tmp_path):
    path = tmp_path / "b.txt"
    path.write_bytes(b"second")

    files = await read_inputs([FileData(name="a.txt", bytes=b"first"), str(path)])

    assert files == [
        FileData(name="a.txt", bytes=b"first"),
        FileData(name="b.txt", bytes=b"second"),
    ]


@pytest.mark.sanity
@pytest.mark.asyncio
async def test_attempt_path_does_not_modify_inputs():
    chained = chained_handler()
    await chained.init()
    path = ConversionPath(
        (Vertex(chained, SVG), Vertex(chained, INTER), Vertex(chained, PNG))
    )
    files = [LOGO]

    attempt = await attempt_path(path, files)

    assert attempt.success
    assert files == [LOGO]
    assert LOGO.bytes == b"<svg/>"
    assert attempt.dead_prefix == path
