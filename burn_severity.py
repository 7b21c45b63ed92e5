import os
import sys
import numbers
import numpy as np
import config as cfg
from errors import BurnSeverityError, EmptyCollection, InvalidConfiguration
from satelliteimg import get_sensor, normalized_difference
from masking import mask_image
from mosaic import mosaic, validate_aoi
from dnbr import dnbr, reclassify, class_areas, validate_classification
from imagery import fetch_collection, parse_date_range, load_boundary, load_seasonality


def validate_configuration(sensor_id, prefire, postfire, aoi, bounds=cfg.bounds, labels=cfg.labels,
                           colors=cfg.colors, water_threshold=cfg.water_threshold, scale=cfg.dnbr_scale):
    '''
    Checks the whole configuration before any raster work begins.

    Returns:
        sensor: the sensor dict for sensor_id
        prefire: (start, end) dates of the pre fire period
        postfire: (start, end) dates of the post fire period
    '''
    sensor = get_sensor(sensor_id)
    prefire = parse_date_range(*prefire)
    postfire = parse_date_range(*postfire)
    validate_aoi(aoi)
    validate_classification(bounds, labels, colors)

    if isinstance(water_threshold, bool) or not isinstance(water_threshold, numbers.Real) \
            or not 0 < water_threshold <= 12:
        raise InvalidConfiguration("Water threshold must be between 1 and 12 months, got " + repr(water_threshold))
    if isinstance(scale, bool) or not isinstance(scale, numbers.Real) or not np.isfinite(scale) or scale <= 0:
        raise InvalidConfiguration("dNBR scale must be a positive number, got " + repr(scale))

    return sensor, prefire, postfire


def build_composite(collection, sensor, aoi, epoch, seasonality=None, water_threshold=cfg.water_threshold,
                    cloud_mask=None):
    '''
    Masks clouds, snow and water in each image of a collection and mosaics the result.

    Returns:
        The composite SatelliteImg for the epoch
    '''
    masked = [mask_image(img, sensor['mask_policy'], seasonality, water_threshold, cloud_mask)
              for img in collection]
    return mosaic(masked, aoi, epoch)


def run_pipeline(sensor_id, prefire, postfire, aoi, fetch=fetch_collection, seasonality=None,
                 bounds=cfg.bounds, labels=cfg.labels, colors=cfg.colors,
                 water_threshold=cfg.water_threshold, scale=cfg.dnbr_scale, cloud_mask=None):
    '''
    Computes the burn severity map for a wildfire.

    Args:
        sensor_id: satellite program, a key in config.sensors
        prefire: (start, end) of the pre fire period, 'YYYY-MM-DD' strings or dates
        postfire: (start, end) of the post fire period
        aoi: area of interest polygon in the image CRS
        fetch: imagery provider, called as fetch(sensor_id, start, end, aoi) and returning a
            list of SatelliteImg objects sorted by date
        seasonality: optional water seasonality raster on the image grid
        bounds: dNBR class thresholds
        labels: label per severity class
        colors: color per severity class
        water_threshold: months per year with water above which a pixel is masked
        scale: dNBR scale factor
        cloud_mask: optional cloud detection function replacing the QA band policy

    Returns:
        dict with the pre_mosaic, post_mosaic, pre_nbr, post_nbr, dnbr and classified images
    '''
    sensor, prefire, postfire = validate_configuration(sensor_id, prefire, postfire, aoi, bounds, labels,
                                                       colors, water_threshold, scale)
    print("Data selected for analysis: " + sensor['name'])
    print("Fire incident occurred between " + str(prefire[1]) + " and " + str(postfire[0]))

    products = {}
    for epoch, (start, end) in (('pre', prefire), ('post', postfire)):
        collection = fetch(sensor_id, start, end, aoi)
        print(epoch.capitalize() + "-fire collection: " + str(len(collection)) + " images")
        if not collection:
            raise EmptyCollection("No " + sensor['name'] + " images found for the " + epoch + "-fire epoch " +
                                  str(start) + " to " + str(end) + " over the area of interest. "
                                  "Try a longer date range or check the area of interest.")

        composite = build_composite(collection, sensor, aoi, epoch + "-fire", seasonality, water_threshold,
                                    cloud_mask)
        products[epoch + '_mosaic'] = composite
        products[epoch + '_nbr'] = normalized_difference(composite, sensor['nir_band'], sensor['swir2_band'], 'NBR')

    products['dnbr'] = dnbr(products['pre_nbr'], products['post_nbr'], scale)
    products['classified'] = reclassify(products['dnbr'], bounds)
    return products


def print_area_table(classified, labels=cfg.labels):
    '''
    Prints the area per burn severity class
    '''
    area = class_areas(classified, labels)
    width = max(len(label) for label in labels)
    print("Burn severity, " + cfg.name)
    print("Class".ljust(width) + "  Area (km2)")
    for label in labels:
        print(label.ljust(width) + "  " + format(area[label], '.2f'))


def main():
    boundary = os.path.join(cfg.data_dir, cfg.boundary_file)
    seasonality_path = os.path.join(cfg.data_dir, cfg.seasonality_file)

    try:
        aoi = load_boundary(boundary, cfg.crs)
        seasonality = load_seasonality(seasonality_path) if os.path.exists(seasonality_path) else None
        products = run_pipeline(cfg.sensor, cfg.prefire, cfg.postfire, aoi, seasonality=seasonality)
    except BurnSeverityError as e:
        sys.exit(str(e))

    print_area_table(products['classified'])


if __name__ == '__main__':
    main()
