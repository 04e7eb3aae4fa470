# Cities, generated tours and IRIS sectors (public read API)
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from distri.crud.interfaces import ParticipationStore
from distri.dependencies import get_city, get_dataset, get_iris_service, get_store, get_today
from distri.integrations.opendatasoft import GeocodingError
from distri.schemas.tour import CityOut, TourDetailOut, TourOut
from distri.services.dataset import City, StaticDataset
from distri.services.iris_service import CommuneNotFound, IrisService
from distri.services.tour_board import list_cities, list_city_tours, tour_detail
from distri.services.tour_calendar import get_tour

router = APIRouter(prefix="/cities", tags=["Tours"])


@router.get("", response_model=List[CityOut])
def get_cities(
    store: ParticipationStore = Depends(get_store),
    dataset: StaticDataset = Depends(get_dataset),
    today: date = Depends(get_today),
) -> List[CityOut]:
    """Eligible cities (≥ 5000 housing units) with the number of tours still bookable."""
    return list_cities(store, dataset.cities, today)


@router.get("/{city}/tours", response_model=List[TourOut])
def get_city_tours(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    city: City = Depends(get_city),
    store: ParticipationStore = Depends(get_store),
    today: date = Depends(get_today),
) -> List[TourOut]:
    return list_city_tours(store, city, today, month=month, year=year)


@router.get("/{city}/tours/{tour_index}", response_model=TourDetailOut)
def get_city_tour(
    tour_index: int,
    city: City = Depends(get_city),
    store: ParticipationStore = Depends(get_store),
    today: date = Depends(get_today),
) -> TourDetailOut:
    """Tour status + per-sector counts, statuses and participant labels."""
    tour = get_tour(city.name, tour_index, today)
    if tour is None:
        raise HTTPException(status_code=404, detail=f"Tournée introuvable : {city.name} #{tour_index}")
    return tour_detail(store, tour, today)


@router.get("/{city}/iris")
async def get_city_iris(
    city: City = Depends(get_city),
    iris: IrisService = Depends(get_iris_service),
) -> Dict[str, Any]:
    """IRIS FeatureCollection with properties.logements. 502 when the geometry API fails without cache."""
    try:
        return await iris.get_sectors(city)
    except CommuneNotFound as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except GeocodingError as e:
        raise HTTPException(status_code=502, detail=str(e))
