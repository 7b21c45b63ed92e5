import datetime
import numpy as np
import pytest
from shapely.geometry import Polygon, box
from errors import DimensionMismatch, EmptyCollection, InvalidConfiguration
from mosaic import area_of_interest, validate_aoi, aoi_mask, clip_to_boundary, mosaic


def collection(image_factory, nir_values, valid_values, shape=(1, 1)):
    images = []
    for i, (nir, valid) in enumerate(zip(nir_values, valid_values)):
        images.append(image_factory(nir=nir, swir2=1000, valid=np.array(valid, dtype=bool), shape=shape,
                                    date=datetime.date(2020, 10, 10 + i)))
    return images


def test_first_valid_wins(image_factory, aoi):
    images = collection(image_factory, [1000, 2000, 3000], [[[False]], [[False]], [[True]]])

    composite = mosaic(images, aoi)

    assert composite.valid.tolist() == [[True]]
    assert composite.band('NIR')[0, 0] == 3000


def test_earliest_valid_observation_is_used(image_factory, aoi):
    images = collection(image_factory, [1000, 2000, 3000],
                        [[[False, True, False]], [[True, True, False]], [[True, True, False]]], shape=(1, 3))

    composite = mosaic(images, aoi)

    assert composite.band('NIR').tolist() == [[2000, 1000, composite.nodata]]
    assert composite.valid.tolist() == [[True, True, False]]
    assert composite.date == datetime.date(2020, 10, 10)


def test_mosaic_is_deterministic(image_factory, aoi):
    rng = np.random.default_rng(42)
    images = [image_factory(nir=rng.uniform(0, 5000, (4, 5)), swir2=rng.uniform(0, 5000, (4, 5)),
                            valid=rng.random((4, 5)) > 0.5, shape=(4, 5)) for _ in range(4)]

    first = mosaic(images, aoi)
    second = mosaic(images, aoi)

    np.testing.assert_array_equal(first.bands_data, second.bands_data)
    np.testing.assert_array_equal(first.valid, second.valid)


def test_pixels_outside_aoi_are_invalid(image_factory):
    images = collection(image_factory, [1000], [[[True, True]]], shape=(1, 2))

    composite = mosaic(images, box(0, 0, 1, 1))

    assert composite.valid.tolist() == [[True, False]]


def test_empty_collection(aoi):
    with pytest.raises(EmptyCollection, match='pre-fire'):
        mosaic([], aoi, 'pre-fire')


def test_mismatched_grids(image_factory, aoi):
    images = [image_factory(nir=1, swir2=1), image_factory(nir=1, swir2=1, shape=(2, 2))]

    with pytest.raises(DimensionMismatch):
        mosaic(images, aoi)


def test_inputs_are_not_modified(image_factory, aoi):
    images = collection(image_factory, [1000, 2000], [[[False]], [[True]]])

    mosaic(images, aoi)

    assert images[0].valid.tolist() == [[False]]
    assert images[1].band('NIR')[0, 0] == 2000


def test_clip_to_boundary(image_factory):
    img = image_factory(nir=1000, swir2=1000, shape=(2, 2))

    clipped = clip_to_boundary(img, box(0, 1, 2, 2))

    assert clipped.valid.tolist() == [[True, True], [False, False]]


def test_aoi_mask_uses_pixel_centres(image_factory):
    img = image_factory(nir=1, swir2=1, shape=(3, 3))
    triangle = Polygon([(0, 0), (3.2, 0), (0, 3.2)])

    inside = aoi_mask(triangle, img.shape, img.transform)

    assert inside.tolist() == [[True, False, False], [True, True, False], [True, True, True]]


def test_area_of_interest_closes_ring():
    aoi = area_of_interest([(0, 0), (10, 0), (10, 10), (0, 10)])

    assert aoi.area == 100


@pytest.mark.parametrize('vertices', [
    [(0, 0), (1, 1)],
    [(0, 0), (1, 1), (0, 0)],
    [(0, 0), (1, 1), (1, 0), (0, 1)],  # bow tie
])
def test_degenerate_area_of_interest(vertices):
    with pytest.raises(InvalidConfiguration):
        area_of_interest(vertices)


def test_validate_aoi_rejects_other_geometries():
    with pytest.raises(InvalidConfiguration):
        validate_aoi(box(0, 0, 1, 1).exterior)
    with pytest.raises(InvalidConfiguration):
        validate_aoi(Polygon())
