"""Tests for detail page sections and stitching."""

import asyncio

import pytest
from PIL import Image

from photo_studio.containers import AppContainer
from photo_studio.domain.errors import InvalidRequestError
from photo_studio.domain.sessions import DetailSession, GroupResult, SectionReference
from photo_studio.services.detail_page import DetailPageService, route_model_images
from tests.conftest import FakeImageClient, upload, write_png

STEP1 = [
    GroupResult(group_id="g1", front="step1/g1-front.jpg", back="step1/g1-back.jpg"),
    GroupResult(group_id="g2", front="step1/g2-front.jpg", back="step1/g2-back.jpg"),
]


def _ref(index: int, section_type: str) -> SectionReference:
    return SectionReference(
        index=index, name=f"{index}.png", path=f"{index}.png", section_type=section_type
    )


def test_showcase_sections_take_groups_in_order() -> None:
    refs = [_ref(0, "detail"), _ref(1, "showcase"), _ref(4, "showcase")]

    assert route_model_images(refs[1], refs, STEP1) == [
        "step1/g1-front.jpg",
        "step1/g1-back.jpg",
    ]
    assert route_model_images(refs[2], refs, STEP1) == [
        "step1/g2-front.jpg",
        "step1/g2-back.jpg",
    ]


def test_showcase_without_matching_group_uses_everything() -> None:
    refs = [_ref(0, "showcase"), _ref(1, "showcase"), _ref(2, "showcase")]

    assert route_model_images(refs[2], refs, STEP1) == [
        "step1/g1-front.jpg",
        "step1/g1-back.jpg",
        "step1/g2-front.jpg",
        "step1/g2-back.jpg",
    ]


def test_highlight_takes_first_group_and_detail_takes_all() -> None:
    refs = [_ref(0, "highlight"), _ref(1, "detail")]

    assert route_model_images(refs[0], refs, STEP1) == [
        "step1/g1-front.jpg",
        "step1/g1-back.jpg",
    ]
    assert len(route_model_images(refs[1], refs, STEP1)) == 4


def _detail_with_step1(
    container: AppContainer, groups: int = 2
) -> tuple[DetailPageService, DetailSession]:
    session = asyncio.run(container.session_service.new_session("detail"))
    session_dir = container.session_service.session_dir(session.session_id)
    for result in STEP1[:groups]:
        write_png(session_dir / result.front, color=(10, 10, 10))
        write_png(session_dir / result.back, color=(20, 20, 20))
    session.step1_results = list(STEP1[:groups])
    session.status = "step1_done"
    return container.detail_page_service, session


def test_generate_sends_reference_then_model_images(
    container: AppContainer, image_client: FakeImageClient
) -> None:
    service, session = _detail_with_step1(container)
    layout = upload("layout.png", color=(9, 99, 199))
    asyncio.run(service.upload_sections(session, [layout]))
    asyncio.run(service.upload_sections(session, [upload("s.png")], "showcase"))

    outcome = asyncio.run(service.generate(session))

    assert outcome.new_count == 2
    assert [status.result_path for status in outcome.statuses] == [
        "step2/section-01.jpg",
        "step2/section-02.jpg",
    ]
    assert session.status == "step2_done"
    assert [ref.section_type for ref in session.detail_refs] == ["detail", "showcase"]
    counts = sorted(len(call.images) for call in image_client.calls)
    assert counts == [3, 5]
    detail_call = next(call for call in image_client.calls if len(call.images) == 5)
    assert detail_call.images[0].data == layout.data
    assert "790px" in detail_call.prompt


def test_generate_preconditions(container: AppContainer) -> None:
    service, session = _detail_with_step1(container, groups=0)

    with pytest.raises(InvalidRequestError, match="detail page reference"):
        asyncio.run(service.generate(session))

    asyncio.run(service.upload_sections(session, [upload("a.png")]))
    with pytest.raises(InvalidRequestError, match="step 1"):
        asyncio.run(service.generate(session))


def test_unknown_section_type(container: AppContainer) -> None:
    service, session = _detail_with_step1(container)

    with pytest.raises(InvalidRequestError, match="section type"):
        asyncio.run(service.upload_sections(session, [upload("a.png")], "banner"))


def test_stitch_requires_every_section(
    container: AppContainer, image_client: FakeImageClient
) -> None:
    service, session = _detail_with_step1(container)
    failing = upload("b.png", color=(7, 7, 7))
    asyncio.run(service.upload_sections(session, [upload("a.png"), failing]))
    image_client.fail_first_images.add(failing.data)
    asyncio.run(service.generate(session))

    with pytest.raises(InvalidRequestError, match="without a result: 1"):
        asyncio.run(service.stitch(session))

    assert session.final_path is None


def test_stitch_stacks_sections_at_page_width(container: AppContainer) -> None:
    service, session = _detail_with_step1(container)
    asyncio.run(service.upload_sections(session, [upload("a.png"), upload("b.png")]))
    asyncio.run(service.generate(session))

    output = asyncio.run(service.stitch(session))

    assert output.name == "detail-page.jpg"
    assert session.final_path == "final/detail-page.jpg"
    assert session.status == "finished"
    with Image.open(output) as page:
        assert page.size == (790, 2370)
    restored = asyncio.run(container.session_service.get_session(session.session_id))
    assert restored.status == "finished"


def test_regenerate_and_delete_section(
    container: AppContainer, image_client: FakeImageClient
) -> None:
    service, session = _detail_with_step1(container)
    asyncio.run(service.upload_sections(session, [upload("a.png"), upload("b.png")]))
    asyncio.run(service.generate(session))
    session_dir = container.session_service.session_dir(session.session_id)

    result = asyncio.run(service.regenerate(session, 1, adjustment="larger title"))

    assert result.path == "step2/section-02.jpg"
    assert "Adjustment request: larger title" in image_client.calls[-1].prompt
    assert len(session.step2_results) == 2

    asyncio.run(service.delete_section(session, 0))

    assert [ref.index for ref in session.detail_refs] == [1]
    assert [item.index for item in session.step2_results] == [1]
    assert not (session_dir / "step2/section-01.jpg").exists()
    with pytest.raises(InvalidRequestError, match="not found"):
        asyncio.run(service.regenerate(session, 0))
