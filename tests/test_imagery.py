import datetime
import numpy as np
import pytest
import rasterio as rio
import geopandas as gpd
from rasterio.transform import from_origin
from shapely.geometry import box
import config as cfg
from errors import InvalidConfiguration
from imagery import parse_date, parse_date_range, fetch_collection, load_seasonality, load_boundary

CRS = 'EPSG:32759'


def write_raster(path, data, origin=(500000, 5000060), nodata=None):
    data = np.asarray(data, dtype=np.float32)
    with rio.open(path, 'w', driver='GTiff', height=data.shape[1], width=data.shape[2], count=data.shape[0],
                  dtype='float32', crs=CRS, transform=from_origin(origin[0], origin[1], 20, 20),
                  nodata=nodata) as dest:
        dest.write(data)


def landsat_bands(nir):
    data = np.full((8, 3, 3), 500, dtype=np.float32)
    data[4] = nir
    data[7] = 0
    return data


@pytest.fixture
def data_dir(tmp_path):
    write_raster(tmp_path / 'ohau_l8_20191020.tif', landsat_bands(3000))
    write_raster(tmp_path / 'ohau_l8_20191012.tif', landsat_bands(2000))
    write_raster(tmp_path / 'ohau_l8_20201101.tif', landsat_bands(1000))
    write_raster(tmp_path / 'far_away_20191015.tif', landsat_bands(4000), origin=(900000, 5000060))
    write_raster(tmp_path / 'no_date.tif', landsat_bands(4000))
    (tmp_path / 'notes_20191013.txt').write_text('not an image')
    return tmp_path


@pytest.fixture
def area():
    return box(500000, 5000000, 500060, 5000060)


def test_parse_date():
    assert parse_date('2020-10-04') == datetime.date(2020, 10, 4)
    assert parse_date(datetime.datetime(2020, 10, 4, 12)) == datetime.date(2020, 10, 4)
    with pytest.raises(InvalidConfiguration):
        parse_date('04/10/2020')


def test_parse_date_range_must_be_ordered():
    assert parse_date_range('2019-10-10', '2019-11-30') == (datetime.date(2019, 10, 10), datetime.date(2019, 11, 30))
    with pytest.raises(InvalidConfiguration):
        parse_date_range('2019-11-30', '2019-10-10')


def test_fetch_collection(data_dir, area):
    images = fetch_collection('L8', '2019-10-10', '2019-11-30', area, str(data_dir))

    assert [img.date for img in images] == [datetime.date(2019, 10, 12), datetime.date(2019, 10, 20)]
    assert images[0].band('NIR')[0, 0] == 2000
    assert images[0].bands == cfg.sensors['L8']['bands']
    assert images[0].crs == rio.crs.CRS.from_user_input(CRS)
    assert images[0].valid.all()


def test_fetch_collection_end_is_exclusive(data_dir, area):
    assert fetch_collection('L8', '2019-10-10', '2019-10-20', area, str(data_dir))[-1].date == \
        datetime.date(2019, 10, 12)


def test_fetch_collection_may_be_empty(data_dir, area):
    assert fetch_collection('L8', '2018-01-01', '2018-12-31', area, str(data_dir)) == []


def test_fetch_collection_configuration_errors(data_dir, area, tmp_path):
    with pytest.raises(InvalidConfiguration):
        fetch_collection('MODIS', '2019-10-10', '2019-11-30', area, str(data_dir))
    with pytest.raises(InvalidConfiguration):
        fetch_collection('L8', '2019-10-10', '2019-11-30', area, str(tmp_path / 'missing'))


def test_load_band_data_marks_nodata_invalid(tmp_path):
    data = landsat_bands(3000)
    data[:, 0, 0] = -1
    write_raster(tmp_path / 'scene_20191020.tif', data, nodata=-1)

    img = fetch_collection('L8', '2019-10-10', '2019-11-30', None, str(tmp_path))[0]

    assert not img.valid[0, 0]
    assert img.valid.sum() == 8
    assert img.bands_data[0, 0, 0] == img.nodata


def test_load_seasonality(tmp_path):
    write_raster(tmp_path / 'seasonality.tif', np.array([[[0, 12], [10, 3]]]))

    seasonality = load_seasonality(str(tmp_path / 'seasonality.tif'))

    assert seasonality.bands == {'seasonality': 1}
    assert seasonality.band('seasonality').tolist() == [[0, 12], [10, 3]]


def test_load_boundary(tmp_path):
    path = tmp_path / 'boundary.geojson'
    gpd.GeoDataFrame({'name': ['a', 'b']}, geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1)],
                     crs=CRS).to_file(path, driver='GeoJSON')

    aoi = load_boundary(str(path))

    assert aoi.area == pytest.approx(2)


def test_load_boundary_missing_file(tmp_path):
    with pytest.raises(InvalidConfiguration):
        load_boundary(str(tmp_path / 'missing.shp'))
