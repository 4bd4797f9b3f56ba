"""ECR terminal REST endpoints"""

START_SALE = "/startSale"
START_ATH_MOVIL_SALE = "/startAthMovilSale"
GET_TRANSACTION_STATUS = "/getTrxStatus"
