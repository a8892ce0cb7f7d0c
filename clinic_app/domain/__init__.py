"""Domain packages of the clinic booking core"""
