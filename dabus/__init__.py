"""DaBus student bus-booking API"""
