import datetime
import numpy as np
import pytest
from rasterio.transform import from_origin
from shapely.geometry import box
import config as cfg
from satelliteimg import SatelliteImg

CRS = 'EPSG:32759'


def make_image(nir, swir2, qa=0, valid=None, date=datetime.date(2020, 10, 20), red=1000.0, swir=1000.0,
               shape=(1, 1)):
    '''
    Builds a Landsat 8 style image where every band is either a scalar broadcast to the
    grid or a 2D array.
    '''
    bands = cfg.sensors['L8']['bands']
    data = np.full((max(bands.values()),) + shape, 500.0, dtype=np.float32)
    for name, value in (('NIR', nir), ('SWIR2', swir2), ('QA', qa), ('red', red), ('SWIR', swir)):
        data[bands[name] - 1] = np.broadcast_to(np.asarray(value, dtype=np.float32), shape)
    return SatelliteImg.from_array(data, date, bands, valid, CRS, from_origin(0, shape[0], 1, 1))


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def aoi():
    return box(-100, -100, 100, 100)
